import logging
from enum import Enum
from typing import Dict, Mapping, Optional, Protocol

import psycopg
from psycopg import sql

from registration.roles import Role
from persistence.crypto import TokenCipher

logger = logging.getLogger(__name__)


class Scope(str, Enum):
    DURABLE = "durable"
    SESSION = "session"


AUTH_TOKEN = "AuthToken"
ACCESS_TOKEN = "AccessToken"
REFRESH_TOKEN = "RefreshToken"
TOKEN_KINDS = (AUTH_TOKEN, ACCESS_TOKEN, REFRESH_TOKEN)


class StorageBackend(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self):
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self):
        return list(self._items)


class PostgresStorage:
    """Durable storage in a single key/value table, values AES-GCM encrypted."""

    def __init__(self, conn: psycopg.Connection, cipher: TokenCipher, table: str = "session_tokens"):
        self.conn = conn
        self.cipher = cipher
        self.table = table

    def setup(self) -> None:
        with self.conn.cursor() as cur:
            cur.execute(
                sql.SQL(
                    """
                    CREATE TABLE IF NOT EXISTS {} (
                        storage_key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
                    )
                    """
                ).format(sql.Identifier(self.table))
            )

    def get_item(self, key: str) -> Optional[str]:
        with self.conn.cursor() as cur:
            cur.execute(
                sql.SQL("SELECT value FROM {} WHERE storage_key = %s").format(
                    sql.Identifier(self.table)
                ),
                (key,),
            )
            row = cur.fetchone()
        if row is None:
            return None
        return self.cipher.decrypt_text(row[0], aad=key)

    def set_item(self, key: str, value: str) -> None:
        enc = self.cipher.encrypt_text(value, aad=key)
        with self.conn.cursor() as cur:
            cur.execute(
                sql.SQL(
                    """
                    INSERT INTO {} (storage_key, value) VALUES (%s, %s)
                    ON CONFLICT (storage_key)
                    DO UPDATE SET value = EXCLUDED.value, updated_at = now()
                    """
                ).format(sql.Identifier(self.table)),
                (key, enc),
            )

    def remove_item(self, key: str) -> None:
        with self.conn.cursor() as cur:
            cur.execute(
                sql.SQL("DELETE FROM {} WHERE storage_key = %s").format(
                    sql.Identifier(self.table)
                ),
                (key,),
            )


class SessionStore:
    """Role-scoped token storage over a durable and a session scope.

    Create one per process and hand it to every client that needs tokens.
    """

    def __init__(
        self,
        durable: Optional[StorageBackend] = None,
        session: Optional[StorageBackend] = None,
    ):
        self._scopes: Dict[Scope, StorageBackend] = {
            Scope.DURABLE: durable if durable is not None else MemoryStorage(),
            Scope.SESSION: session if session is not None else MemoryStorage(),
        }

    @staticmethod
    def key(role: Role, kind: str) -> str:
        return f"{Role(role).value}{kind}"

    def backend(self, scope: Scope) -> StorageBackend:
        return self._scopes[scope]

    def set(self, role: Role, tokens: Mapping[str, Optional[str]], scope: Scope = Scope.DURABLE) -> None:
        storage = self._scopes[scope]
        if tokens.get("accessToken"):
            storage.set_item(self.key(role, AUTH_TOKEN), tokens["accessToken"])
            storage.set_item(self.key(role, ACCESS_TOKEN), tokens["accessToken"])
        if tokens.get("refreshToken"):
            storage.set_item(self.key(role, REFRESH_TOKEN), tokens["refreshToken"])
        if tokens.get("token"):
            storage.set_item(self.key(role, AUTH_TOKEN), tokens["token"])
        logger.debug("Stored %s tokens in %s scope", Role(role).value, scope.value)

    def get(self, role: Role, kind: str = ACCESS_TOKEN, scope: Optional[Scope] = None) -> Optional[str]:
        scopes = [scope] if scope is not None else [Scope.DURABLE, Scope.SESSION]
        for s in scopes:
            value = self._scopes[s].get_item(self.key(role, kind))
            if value:
                return value
        return None

    def access_token(self, role: Role) -> Optional[str]:
        for s in (Scope.DURABLE, Scope.SESSION):
            storage = self._scopes[s]
            value = storage.get_item(self.key(role, AUTH_TOKEN)) or storage.get_item(
                self.key(role, ACCESS_TOKEN)
            )
            if value:
                return value
        return None

    def refresh_token(self, role: Role) -> Optional[str]:
        return self.get(role, REFRESH_TOKEN)

    def scope_of(self, role: Role) -> Optional[Scope]:
        for s in (Scope.DURABLE, Scope.SESSION):
            storage = self._scopes[s]
            if any(storage.get_item(self.key(role, kind)) for kind in TOKEN_KINDS):
                return s
        return None

    def clear(self, role: Role, scope: Optional[Scope] = None) -> None:
        scopes = [scope] if scope is not None else [Scope.DURABLE, Scope.SESSION]
        for s in scopes:
            for kind in TOKEN_KINDS:
                self._scopes[s].remove_item(self.key(role, kind))
        logger.debug("Cleared %s tokens", Role(role).value)
