import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

DEFAULT_BASE_URL = "http://localhost:5000/api"


class ApiConfig(BaseModel):
    base_url: str = Field(default=DEFAULT_BASE_URL, description="REST API root, no trailing slash")
    timeout: float = Field(default=15.0, description="Per-request timeout in seconds")
    document_encoding: Literal["multipart", "base64"] = Field(
        default="multipart",
        description="How signup documents travel to the backend",
    )
    redirect_delay: float = Field(
        default=0.5,
        description="Seconds the default notifier waits before reporting a notification as shown",
    )
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ApiConfig":
        return cls(
            base_url=os.environ.get("API_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            timeout=float(os.environ.get("API_TIMEOUT", "15")),
            document_encoding=os.environ.get("SIGNUP_DOCUMENT_ENCODING", "multipart"),
            redirect_delay=float(os.environ.get("SIGNUP_REDIRECT_DELAY", "0.5")),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )
