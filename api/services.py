import json
import logging
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

import requests
from pydantic import BaseModel, Field

from api.client import ApiClient
from api.errors import ApiError
from persistence.session_store import Scope, SessionStore
from config.api import ApiConfig
from registration.roles import Role

logger = logging.getLogger(__name__)

# nurses expose a dedicated OTP route, everyone else nests it under login
OTP_ENDPOINTS: Dict[Role, str] = {Role.NURSE: "/auth/request-otp"}
DEFAULT_OTP_ENDPOINT = "/auth/login/otp"


class SignupFile(BaseModel):
    field: str
    name: str
    content_type: str
    data: bytes


class SignupRequest(BaseModel):
    """Transport-ready signup call: JSON body or multipart form."""

    encoding: Literal["multipart", "base64"] = "multipart"
    fields: Dict[str, Any] = Field(default_factory=dict)
    files: List[SignupFile] = Field(default_factory=list)

    def form_data(self) -> Dict[str, str]:
        data: Dict[str, str] = {}
        for key, value in self.fields.items():
            if isinstance(value, (dict, list)):
                data[key] = json.dumps(value)
            elif isinstance(value, bool):
                data[key] = "true" if value else "false"
            else:
                data[key] = str(value)
        return data

    def file_parts(self) -> List[Tuple[str, Tuple[str, bytes, str]]]:
        return [(f.field, (f.name, f.data, f.content_type)) for f in self.files]


class RoleAuthService:
    """Signup, OTP login and logout for one role."""

    def __init__(self, client: ApiClient):
        self.client = client

    @property
    def role(self) -> Role:
        return self.client.role

    @property
    def store(self) -> SessionStore:
        return self.client.store

    def _endpoint(self, suffix: str) -> str:
        return f"/{self.client.api_path}{suffix}"

    def signup(self, request: SignupRequest) -> Dict[str, Any]:
        endpoint = self._endpoint("/auth/signup")
        if request.encoding == "multipart":
            return self.client.post_multipart(endpoint, request.form_data(), request.file_parts())
        return self.client.post(endpoint, request.fields)

    def request_login_otp(self, phone: str) -> Dict[str, Any]:
        suffix = OTP_ENDPOINTS.get(self.role, DEFAULT_OTP_ENDPOINT)
        return self.client.post(self._endpoint(suffix), {"phone": phone})

    def login(self, phone: str, otp: str) -> Dict[str, Any]:
        return self.client.post(self._endpoint("/auth/login"), {"phone": phone, "otp": otp})

    def store_tokens(self, tokens: Mapping[str, Optional[str]], remember: bool = True) -> None:
        self.store.set(self.role, tokens, Scope.DURABLE if remember else Scope.SESSION)

    def logout(self) -> Dict[str, Any]:
        """Tokens are cleared locally whatever the server answers."""
        refresh_token = self.store.refresh_token(self.role)
        try:
            self.client.post(self._endpoint("/auth/logout"), {"refreshToken": refresh_token})
        except (ApiError, requests.RequestException) as exc:
            logger.error("Error calling logout API for %s: %s", self.role.value, exc)
        self.store.clear(self.role)
        return {"success": True, "message": "Logout successful"}


def build_services(
    config: ApiConfig,
    store: SessionStore,
    session: Optional[requests.Session] = None,
) -> Dict[Role, RoleAuthService]:
    session = session or requests.Session()
    return {
        role: RoleAuthService(ApiClient(role, config, store, session=session)) for role in Role
    }
