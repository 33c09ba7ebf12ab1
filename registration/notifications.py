import asyncio
import logging
from typing import Optional, Protocol

from api.errors import is_auth_session_error
from persistence.session_store import SessionStore
from registration.roles import Role

logger = logging.getLogger(__name__)

GENERIC_ERROR = "An error occurred. Please try again."


class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    async def wait_displayed(self) -> None:
        """Resolve once the last notification has been shown to the user."""
        ...


class LoggingNotifier:
    """Default notifier: writes to the log and reports display after ``delay`` seconds."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay

    def success(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.warning(message)

    async def wait_displayed(self) -> None:
        if self.delay > 0:
            await asyncio.sleep(self.delay)


def report_error(
    notifier: Notifier,
    exc: BaseException,
    *,
    role: Optional[Role] = None,
    store: Optional[SessionStore] = None,
    fallback: str = GENERIC_ERROR,
) -> None:
    """Turn a failed call into a user-visible message.

    Auth/session failures clear the role's tokens silently instead.
    """
    message = str(exc).strip()
    if is_auth_session_error(message):
        logger.info("Session ended for %s: %s", role.value if role else "unknown role", message)
        if store is not None and role is not None:
            store.clear(role)
        return
    notifier.error(message or fallback)
