import os
from typing import Optional

import psycopg
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

load_dotenv()

REQUIRED_VARS = ("PG_HOST", "PG_PORT", "PG_DB", "PG_USER", "PG_PASSWORD")


class PostgresConfig(BaseModel):
    """Connection settings for the durable token storage."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    host: str
    port: int
    dbname: str
    user: str
    password: str
    token_table: str = "session_tokens"

    @staticmethod
    def is_configured() -> bool:
        return all(os.environ.get(name) for name in REQUIRED_VARS)

    @classmethod
    def from_env(cls) -> "PostgresConfig":
        return cls(
            host=os.environ["PG_HOST"],
            port=int(os.environ["PG_PORT"]),
            dbname=os.environ["PG_DB"],
            user=os.environ["PG_USER"],
            password=os.environ["PG_PASSWORD"],
            token_table=os.environ.get("PG_TOKEN_TABLE", "session_tokens"),
        )

    @classmethod
    def from_env_optional(cls) -> Optional["PostgresConfig"]:
        return cls.from_env() if cls.is_configured() else None

    def connect(self) -> psycopg.Connection:
        conn = psycopg.connect(
            host=self.host,
            port=self.port,
            dbname=self.dbname,
            user=self.user,
            password=self.password,
        )
        conn.autocommit = True
        return conn
