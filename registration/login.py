import asyncio
import logging
import time
from typing import Callable, Optional

import requests

from api.errors import ApiError
from api.services import RoleAuthService
from registration.mutators import NON_DIGIT, digits_only
from registration.notifications import LoggingNotifier, Notifier, report_error

logger = logging.getLogger(__name__)

OTP_LENGTH = 6
RESEND_SECONDS = 60

LOGIN_SUCCESS_MESSAGE = "Login successful! Redirecting..."
LOGIN_FAILED_MESSAGE = "Login failed. Please try again."


class LoginFlow:
    """OTP login for one role: request a code, type it in, verify, keep the tokens."""

    def __init__(
        self,
        service: RoleAuthService,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], float] = time.monotonic,
        success_message: str = LOGIN_SUCCESS_MESSAGE,
        failure_message: str = LOGIN_FAILED_MESSAGE,
    ):
        self.service = service
        self.notifier = notifier or LoggingNotifier()
        self.clock = clock
        self.success_message = success_message
        self.failure_message = failure_message
        self.phone = ""
        self.otp = ""
        self.remember = True
        self.otp_sent = False
        self.is_submitting = False
        self.is_sending_otp = False
        self._otp_sent_at: Optional[float] = None

    @property
    def role(self):
        return self.service.role

    def set_phone(self, value: str) -> None:
        self.phone = digits_only(value, 10)

    def seconds_until_resend(self) -> int:
        if self._otp_sent_at is None:
            return 0
        left = RESEND_SECONDS - (self.clock() - self._otp_sent_at)
        return max(0, int(round(left)))

    def set_otp_digit(self, index: int, value: str) -> None:
        if NON_DIGIT.search(value or "") or not 0 <= index < OTP_LENGTH:
            return
        digits = list(self.otp[:OTP_LENGTH].ljust(OTP_LENGTH))
        digits[index] = value[-1:] or " "
        self.otp = "".join(digits).replace(" ", "")

    def paste_otp(self, text: str) -> bool:
        pasted = digits_only(text, OTP_LENGTH)
        if len(pasted) != OTP_LENGTH:
            return False
        self.otp = pasted
        return True

    def mark_otp_sent(self, phone: str) -> None:
        """Start at the OTP step for a code the backend already sent, e.g. on signup."""
        self.phone = digits_only(phone, 10)
        self.otp = ""
        self.otp_sent = True
        self._otp_sent_at = self.clock()

    async def request_otp(self) -> bool:
        if self.is_sending_otp:
            return False
        phone = digits_only(self.phone)
        if len(phone) < 10:
            self.notifier.error("Please enter a valid mobile number")
            return False

        self.is_sending_otp = True
        try:
            response = await asyncio.to_thread(self.service.request_login_otp, phone)
        except (ApiError, requests.RequestException) as exc:
            logger.error("Send OTP error for %s: %s", self.role.value, exc)
            report_error(self.notifier, exc, role=self.role, store=self.service.store)
            return False
        finally:
            self.is_sending_otp = False

        if not response.get("success"):
            self.notifier.error(response.get("message") or "Failed to send OTP. Please try again.")
            return False

        self.phone = phone
        self.otp_sent = True
        self._otp_sent_at = self.clock()
        self.notifier.success("OTP sent to your mobile number")
        return True

    async def resend_otp(self) -> bool:
        if self.is_sending_otp or self.seconds_until_resend() > 0:
            return False
        self.otp = ""
        self.otp_sent = False
        self._otp_sent_at = None
        return await self.request_otp()

    async def verify(self) -> bool:
        if self.is_submitting or self.is_sending_otp:
            return False
        if not self.otp_sent:
            return await self.request_otp()
        if len(self.otp) != OTP_LENGTH:
            self.notifier.error("Please enter the 6-digit OTP")
            return False

        self.is_submitting = True
        try:
            response = await asyncio.to_thread(self.service.login, self.phone, self.otp)
        except (ApiError, requests.RequestException) as exc:
            logger.error("Login error for %s: %s", self.role.value, exc)
            report_error(self.notifier, exc, role=self.role, store=self.service.store)
            return False
        finally:
            self.is_submitting = False

        tokens = (response.get("data") or {}).get("tokens")
        if not response.get("success") or not tokens:
            self.notifier.error(response.get("message") or self.failure_message)
            return False

        self.service.store_tokens(tokens, remember=self.remember)
        self.notifier.success(self.success_message)
        await self.notifier.wait_displayed()
        return True

    async def logout(self) -> bool:
        response = await asyncio.to_thread(self.service.logout)
        self.notifier.success(response.get("message", "Logged out successfully"))
        return True
