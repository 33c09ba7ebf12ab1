import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from api.errors import (
    ApiError,
    AuthSessionError,
    SESSION_EXPIRED_MESSAGE,
    TOKEN_MISSING_MESSAGE,
)
from config.api import ApiConfig
from persistence.session_store import Scope, SessionStore
from registration.roles import Role

logger = logging.getLogger(__name__)

ROLE_API_PATHS: Dict[Role, str] = {
    Role.DOCTOR: "doctors",
    Role.PHARMACY: "pharmacies",
    Role.LABORATORY: "laboratories",
    Role.NURSE: "nurses",
    Role.PATIENT: "patients",
}

PUBLIC_AUTH_SEGMENTS = (
    "/auth/login",
    "/auth/signup",
    "/auth/request-otp",
    "/auth/refresh-token",
    "/auth/forgot-password",
    "/auth/verify-otp",
    "/auth/reset-password",
    "/auth/check-exists",
)

FileParts = List[Tuple[str, Tuple[str, bytes, str]]]


def is_public_endpoint(endpoint: str) -> bool:
    return any(segment in endpoint for segment in PUBLIC_AUTH_SEGMENTS)


class ApiClient:
    """JSON/multipart client for one role's slice of the API.

    Protected calls carry the role's bearer token; a 401 triggers one token
    refresh and a retry.
    """

    def __init__(
        self,
        role: Role,
        config: ApiConfig,
        store: SessionStore,
        session: Optional[requests.Session] = None,
    ):
        self.role = Role(role)
        self.config = config
        self.store = store
        self.session = session or requests.Session()

    @property
    def api_path(self) -> str:
        return ROLE_API_PATHS[self.role]

    def url(self, endpoint: str) -> str:
        if endpoint.startswith("http"):
            return endpoint
        return f"{self.config.base_url}{endpoint}"

    def _auth_headers(self) -> Dict[str, str]:
        token = self.store.access_token(self.role)
        if not token:
            self.store.clear(self.role)
            raise AuthSessionError(TOKEN_MISSING_MESSAGE, status=401)
        return {"Authorization": f"Bearer {token}"}

    @staticmethod
    def _parse(response: requests.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = {}
        return body if isinstance(body, dict) else {"data": body}

    def request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[FileParts] = None,
        retry: bool = True,
    ) -> Dict[str, Any]:
        public = is_public_endpoint(endpoint)
        headers = {} if public else self._auth_headers()
        if params:
            params = {k: v for k, v in params.items() if v not in (None, "")}

        logger.debug("%s %s [%s]", method, endpoint, self.role.value)
        response = self.session.request(
            method,
            self.url(endpoint),
            json=json,
            params=params,
            data=data,
            files=files,
            headers=headers,
            timeout=self.config.timeout,
        )

        if response.status_code == 401 and not public:
            if retry and self.store.refresh_token(self.role):
                self.refresh_tokens()
                return self.request(
                    method, endpoint, json=json, params=params, data=data, files=files, retry=False
                )
            self.store.clear(self.role)
            raise AuthSessionError(TOKEN_MISSING_MESSAGE, status=401)

        body = self._parse(response)
        if not response.ok:
            message = body.get("message") or f"Request failed: {response.reason}"
            logger.error("API error [%s] %s %s: %s", self.role.value, method, endpoint, message)
            raise ApiError(message, status=response.status_code, body=body)
        return body

    def refresh_tokens(self) -> Dict[str, Any]:
        scope = self.store.scope_of(self.role) or Scope.DURABLE
        refresh_token = self.store.refresh_token(self.role)
        try:
            response = self.session.post(
                self.url(f"/{self.api_path}/auth/refresh-token"),
                json={"refreshToken": refresh_token},
                timeout=self.config.timeout,
            )
            body = self._parse(response)
            if not response.ok or not body.get("success") or not body.get("data"):
                raise ApiError("Token refresh failed", status=response.status_code, body=body)
        except (ApiError, requests.RequestException) as exc:
            logger.warning("Token refresh failed for %s: %s", self.role.value, exc)
            self.store.clear(self.role)
            raise AuthSessionError(SESSION_EXPIRED_MESSAGE, status=401) from exc

        tokens = body["data"]
        self.store.set(
            self.role,
            {"accessToken": tokens.get("accessToken"), "refreshToken": tokens.get("refreshToken")},
            scope,
        )
        return tokens

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.request("GET", endpoint, params=params)

    def post(self, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.request("POST", endpoint, json=payload or {})

    def put(self, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.request("PUT", endpoint, json=payload or {})

    def patch(self, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.request("PATCH", endpoint, json=payload or {})

    def post_multipart(self, endpoint: str, data: Dict[str, Any], files: FileParts) -> Dict[str, Any]:
        return self.request("POST", endpoint, data=data, files=files or None)
