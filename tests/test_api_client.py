import pytest

from api.client import ApiClient, is_public_endpoint
from api.errors import ApiError, AuthSessionError, SESSION_EXPIRED_MESSAGE, TOKEN_MISSING_MESSAGE
from api.services import RoleAuthService, SignupFile, SignupRequest, build_services
from persistence.session_store import Scope, SessionStore
from registration.roles import Role

from conftest import FakeResponse, FakeSession


def make_service(api_config, role, *responses, store=None):
    session = FakeSession(*responses)
    client = ApiClient(role, api_config, store or SessionStore(), session=session)
    return RoleAuthService(client), session


def test_public_endpoints():
    assert is_public_endpoint("/doctors/auth/signup")
    assert is_public_endpoint("/doctors/auth/login/otp")
    assert is_public_endpoint("/nurses/auth/refresh-token")
    assert not is_public_endpoint("/doctors/profile")
    assert not is_public_endpoint("/doctors/auth/logout")


def test_multipart_signup_has_no_auth_header(api_config):
    service, session = make_service(api_config, Role.DOCTOR, FakeResponse(201, {"success": True}))
    request = SignupRequest(
        fields={"firstName": "Jo", "languages": ["English"], "consultationFee": 500.5},
        files=[SignupFile(field="documents", name="a.pdf", content_type="application/pdf", data=b"%PDF")],
    )

    assert service.signup(request) == {"success": True}

    method, url, kwargs = session.calls[0]
    assert (method, url) == ("POST", "http://api.test/doctors/auth/signup")
    assert kwargs["headers"] == {}
    assert kwargs["timeout"] == 5.0
    assert kwargs["data"] == {"firstName": "Jo", "languages": '["English"]', "consultationFee": "500.5"}
    assert kwargs["files"] == [("documents", ("a.pdf", b"%PDF", "application/pdf"))]


def test_base64_signup_posts_json(api_config):
    service, session = make_service(api_config, Role.LABORATORY, FakeResponse(200, {"success": True}))
    fields = {"labName": "Lab", "documents": [{"name": "a.pdf", "type": "application/pdf", "data": "data:..."}]}

    service.signup(SignupRequest(encoding="base64", fields=fields))

    _, url, kwargs = session.calls[0]
    assert url == "http://api.test/laboratories/auth/signup"
    assert kwargs["json"] == fields
    assert kwargs["files"] is None


def test_protected_call_without_token_fails_before_sending(api_config):
    store = SessionStore()
    store.set(Role.DOCTOR, {"refreshToken": "r"})
    client = ApiClient(Role.DOCTOR, api_config, store, session=FakeSession())

    with pytest.raises(AuthSessionError) as exc:
        client.get("/doctors/profile")

    assert str(exc.value) == TOKEN_MISSING_MESSAGE
    assert client.session.calls == []
    assert store.refresh_token(Role.DOCTOR) is None


def test_protected_call_sends_bearer_token(api_config):
    store = SessionStore()
    store.set(Role.PATIENT, {"accessToken": "tok"})
    session = FakeSession(FakeResponse(200, {"success": True, "data": {"id": 1}}))
    client = ApiClient(Role.PATIENT, api_config, store, session=session)

    body = client.get("/patients/profile", params={"q": "", "page": 2})

    _, _, kwargs = session.calls[0]
    assert kwargs["headers"] == {"Authorization": "Bearer tok"}
    assert kwargs["params"] == {"page": 2}
    assert body["data"] == {"id": 1}


def test_401_refreshes_and_retries_once(api_config):
    store = SessionStore()
    store.set(Role.NURSE, {"accessToken": "old", "refreshToken": "r1"}, Scope.SESSION)
    session = FakeSession(
        FakeResponse(401, {"message": "jwt expired"}),
        FakeResponse(200, {"success": True, "data": {"accessToken": "new", "refreshToken": "r2"}}),
        FakeResponse(200, {"success": True}),
    )
    client = ApiClient(Role.NURSE, api_config, store, session=session)

    assert client.get("/nurses/profile") == {"success": True}

    refresh = session.calls[1]
    assert refresh[1] == "http://api.test/nurses/auth/refresh-token"
    assert refresh[2]["json"] == {"refreshToken": "r1"}
    assert session.calls[2][2]["headers"] == {"Authorization": "Bearer new"}
    assert store.scope_of(Role.NURSE) == Scope.SESSION
    assert store.refresh_token(Role.NURSE) == "r2"


def test_401_without_refresh_token_clears_session(api_config):
    store = SessionStore()
    store.set(Role.DOCTOR, {"accessToken": "old"})
    client = ApiClient(Role.DOCTOR, api_config, store, session=FakeSession(FakeResponse(401, {})))

    with pytest.raises(AuthSessionError):
        client.get("/doctors/profile")

    assert store.access_token(Role.DOCTOR) is None


def test_failed_refresh_reports_expired_session(api_config):
    store = SessionStore()
    store.set(Role.DOCTOR, {"accessToken": "old", "refreshToken": "r1"})
    session = FakeSession(
        FakeResponse(401, {}),
        FakeResponse(401, {"success": False, "message": "invalid refresh token"}),
    )
    client = ApiClient(Role.DOCTOR, api_config, store, session=session)

    with pytest.raises(AuthSessionError) as exc:
        client.get("/doctors/profile")

    assert str(exc.value) == SESSION_EXPIRED_MESSAGE
    assert store.scope_of(Role.DOCTOR) is None


def test_error_message_comes_from_body(api_config):
    service, _ = make_service(
        api_config, Role.PHARMACY, FakeResponse(409, {"success": False, "message": "Email already registered"})
    )

    with pytest.raises(ApiError) as exc:
        service.signup(SignupRequest(encoding="base64", fields={"pharmacyName": "City Meds"}))

    assert exc.value.message == "Email already registered"
    assert exc.value.status == 409


def test_error_without_json_body_uses_reason(api_config):
    service, _ = make_service(api_config, Role.PHARMACY, FakeResponse(502, None, reason="Bad Gateway"))

    with pytest.raises(ApiError) as exc:
        service.request_login_otp("9876543210")

    assert str(exc.value) == "Request failed: Bad Gateway"


def test_otp_endpoint_differs_for_nurses(api_config):
    nurse, nurse_session = make_service(api_config, Role.NURSE, FakeResponse(200, {"success": True}))
    doctor, doctor_session = make_service(api_config, Role.DOCTOR, FakeResponse(200, {"success": True}))

    nurse.request_login_otp("9876543210")
    doctor.request_login_otp("9876543210")

    assert nurse_session.calls[0][1] == "http://api.test/nurses/auth/request-otp"
    assert doctor_session.calls[0][1] == "http://api.test/doctors/auth/login/otp"
    assert doctor_session.calls[0][2]["json"] == {"phone": "9876543210"}


def test_logout_clears_tokens_even_when_server_fails(api_config):
    store = SessionStore()
    store.set(Role.DOCTOR, {"accessToken": "a", "refreshToken": "r"})
    service, session = make_service(
        api_config, Role.DOCTOR, FakeResponse(500, {"message": "boom"}), store=store
    )

    assert service.logout() == {"success": True, "message": "Logout successful"}
    assert session.calls[0][2]["json"] == {"refreshToken": "r"}
    assert store.scope_of(Role.DOCTOR) is None


def test_store_tokens_respects_remember(api_config):
    service, _ = make_service(api_config, Role.PATIENT)

    service.store_tokens({"accessToken": "a"}, remember=False)

    assert service.store.scope_of(Role.PATIENT) == Scope.SESSION


def test_build_services_shares_one_store(api_config):
    store = SessionStore()
    services = build_services(api_config, store, session=FakeSession())

    assert set(services) == set(Role)
    assert all(s.store is store for s in services.values())
    assert services[Role.LABORATORY].client.api_path == "laboratories"
