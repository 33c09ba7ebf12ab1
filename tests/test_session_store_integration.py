import base64
import os
import uuid

import pytest

from config.postgres import PostgresConfig
from persistence.crypto import TokenCipher
from persistence.session_store import PostgresStorage, Scope, SessionStore
from registration.roles import Role

pytestmark = pytest.mark.skipif(
    not PostgresConfig.is_configured(), reason="PG_* environment variables not set"
)


def test_tokens_encrypted_in_db_and_plaintext_on_read():
    pg = PostgresConfig.from_env()
    conn = pg.connect()

    key_b64 = os.getenv("ENCRYPTION_KEY") or base64.b64encode(os.urandom(32)).decode("ascii")
    table = f"pytest_tokens_{uuid.uuid4().hex[:8]}"
    durable = PostgresStorage(conn, TokenCipher.from_b64(key_b64), table=table)
    durable.setup()

    try:
        store = SessionStore(durable=durable)
        store.set(Role.DOCTOR, {"accessToken": "acc-123", "refreshToken": "ref-456"}, Scope.DURABLE)

        cur = conn.cursor()
        cur.execute(f"SELECT value FROM {table} WHERE storage_key = %s", ("doctorRefreshToken",))
        row = cur.fetchone()
        assert row is not None
        assert "ref-456" not in row[0]

        assert store.access_token(Role.DOCTOR) == "acc-123"
        assert store.refresh_token(Role.DOCTOR) == "ref-456"

        store.clear(Role.DOCTOR)
        assert store.scope_of(Role.DOCTOR) is None
    finally:
        conn.cursor().execute(f"DROP TABLE IF EXISTS {table}")
        conn.close()
