from persistence.session_store import MemoryStorage, Scope, SessionStore
from registration.roles import Role


def test_keys_are_namespaced_by_role():
    assert SessionStore.key(Role.DOCTOR, "AuthToken") == "doctorAuthToken"
    assert SessionStore.key(Role.LABORATORY, "RefreshToken") == "laboratoryRefreshToken"


def test_set_writes_auth_access_and_refresh_keys():
    durable = MemoryStorage()
    store = SessionStore(durable=durable)

    store.set(Role.NURSE, {"accessToken": "acc", "refreshToken": "ref"})

    assert sorted(durable.keys()) == ["nurseAccessToken", "nurseAuthToken", "nurseRefreshToken"]
    assert store.access_token(Role.NURSE) == "acc"
    assert store.refresh_token(Role.NURSE) == "ref"
    assert store.access_token(Role.DOCTOR) is None


def test_remember_off_uses_session_scope():
    durable, session = MemoryStorage(), MemoryStorage()
    store = SessionStore(durable=durable, session=session)

    store.set(Role.PATIENT, {"accessToken": "acc"}, Scope.SESSION)

    assert durable.keys() == []
    assert store.scope_of(Role.PATIENT) == Scope.SESSION
    assert store.get(Role.PATIENT, scope=Scope.DURABLE) is None
    assert store.get(Role.PATIENT) == "acc"


def test_durable_scope_is_read_first():
    store = SessionStore()
    store.set(Role.DOCTOR, {"accessToken": "old"}, Scope.SESSION)
    store.set(Role.DOCTOR, {"accessToken": "new"}, Scope.DURABLE)

    assert store.access_token(Role.DOCTOR) == "new"
    assert store.scope_of(Role.DOCTOR) == Scope.DURABLE


def test_legacy_token_key_maps_to_auth_token():
    store = SessionStore()
    store.set(Role.PHARMACY, {"token": "legacy"})

    assert store.get(Role.PHARMACY, "AuthToken") == "legacy"
    assert store.access_token(Role.PHARMACY) == "legacy"


def test_clear_removes_both_scopes_for_one_role_only():
    store = SessionStore()
    store.set(Role.DOCTOR, {"accessToken": "a", "refreshToken": "r"}, Scope.DURABLE)
    store.set(Role.DOCTOR, {"accessToken": "b"}, Scope.SESSION)
    store.set(Role.NURSE, {"accessToken": "n"})

    store.clear(Role.DOCTOR)

    assert store.access_token(Role.DOCTOR) is None
    assert store.refresh_token(Role.DOCTOR) is None
    assert store.scope_of(Role.DOCTOR) is None
    assert store.access_token(Role.NURSE) == "n"


def test_clear_single_scope():
    store = SessionStore()
    store.set(Role.DOCTOR, {"accessToken": "a"}, Scope.DURABLE)
    store.set(Role.DOCTOR, {"accessToken": "b"}, Scope.SESSION)

    store.clear(Role.DOCTOR, Scope.DURABLE)

    assert store.access_token(Role.DOCTOR) == "b"
