import pytest

from config.api import ApiConfig
from registration.roles import Role


class RecordingNotifier:
    def __init__(self):
        self.successes = []
        self.errors = []
        self.displayed = 0

    def success(self, message):
        self.successes.append(message)

    def error(self, message):
        self.errors.append(message)

    async def wait_displayed(self):
        self.displayed += 1


class FakeSignupService:
    def __init__(self, role, response=None, error=None):
        self.role = role
        self.response = response if response is not None else {"success": True}
        self.error = error
        self.requests = []

    def signup(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def services():
    return {role: FakeSignupService(role) for role in Role}


class FakeResponse:
    def __init__(self, status_code=200, body=None, reason="OK"):
        self.status_code = status_code
        self.body = body
        self.reason = reason

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self.body is None:
            raise ValueError("no json body")
        return self.body


class FakeSession:
    """Stands in for requests.Session; replies are consumed in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self.responses.pop(0)

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)


@pytest.fixture
def api_config():
    return ApiConfig(base_url="http://api.test", timeout=5.0)
