import logging
from typing import Any, Dict, Literal, Optional

import requests

from api.errors import ApiError
from persistence.session_store import SessionStore
from registration.documents import UploadedFile
from registration.graph import WizardGraphFactory
from registration.login import LoginFlow
from registration.mutators import FieldMutator
from registration.notifications import LoggingNotifier, Notifier, report_error
from registration.roles import Role, RoleSchema, get_schema
from registration.state import Action, WizardState
from registration.submission import SubmissionAdapter, SubmissionError
from registration.validator import StepValidator

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Registration submitted successfully! Please wait for admin approval."
PATIENT_SUCCESS_MESSAGE = "Account created! OTP sent to your mobile number"
PATIENT_VERIFIED_MESSAGE = "Account verified successfully! Redirecting..."
PATIENT_VERIFY_FAILED = "OTP verification failed. Please try again."
SIGNUP_FAILED = "Signup failed. Please try again."

Mode = Literal["login", "signup"]


class SignupWizard:
    """One signup session: a draft per role, one of them active.

    Field edits and step moves are synchronous; attaching files and
    submitting are coroutines. Patients confirm their account with the OTP
    sent on signup before the draft is cleared.
    """

    def __init__(
        self,
        adapter: SubmissionAdapter,
        notifier: Optional[Notifier] = None,
        role: Role = Role.DOCTOR,
        validator: Optional[StepValidator] = None,
        store: Optional[SessionStore] = None,
    ):
        self.adapter = adapter
        self.notifier = notifier or LoggingNotifier()
        self.store = store
        self._graph = WizardGraphFactory(validator or StepValidator()).compile()
        self._states: Dict[Role, WizardState] = {}
        self.mode: Mode = "signup"
        self.is_submitting = False
        self.signup_otp: Optional[LoginFlow] = None
        self.role = Role(role)
        self.select_role(role)

    # state access

    @property
    def state(self) -> WizardState:
        return self._states[self.role]

    @property
    def schema(self) -> RoleSchema:
        return get_schema(self.role)

    @property
    def draft(self) -> Dict[str, Any]:
        return self.state.draft

    @property
    def current_step(self) -> int:
        return self.state.current_step

    @property
    def total_steps(self) -> int:
        return self.state.total_steps

    @property
    def documents(self):
        return self.state.documents

    def _replace(self, **update: Any) -> None:
        self._states[self.role] = self.state.model_copy(update=update)

    def select_role(self, role: Role) -> None:
        """Switch the active draft; the selected role restarts at step 1 with no documents.

        A submission already in flight keeps the guard until it settles.
        """
        self.role = Role(role)
        state = self._states.get(self.role) or WizardState.initial(self.role)
        state.documents.clear()
        self._states[self.role] = state.model_copy(
            update={"current_step": 1, "validation_error": "", "ready_to_submit": False}
        )

    def set_mode(self, mode: Mode) -> None:
        self.mode = mode
        self._replace(current_step=1)

    # field mutators

    def change(self, name: str, value: Any = "", input_type: str = "text", checked: bool = False) -> None:
        mutator = FieldMutator(self.schema)
        self._replace(draft=mutator.apply(self.draft, name, value, input_type, checked))

    def key_press(self, name: str, raw: str, key: str) -> None:
        self._replace(draft=FieldMutator(self.schema).key_press(self.draft, name, raw, key))

    def remove_tag(self, name: str, tag: str) -> None:
        self._replace(draft=FieldMutator(self.schema).remove_tag(self.draft, name, tag))

    def add_education_entry(self) -> None:
        self._replace(draft=FieldMutator(self.schema).add_education_entry(self.draft))

    def remove_education_entry(self, index: int) -> None:
        self._replace(draft=FieldMutator(self.schema).remove_education_entry(self.draft, index))

    # step controller

    def _run(self, action: Action) -> WizardState:
        values = {
            **dict(self.state),
            "action": action,
            "validation_error": "",
            "missing_fields": [],
            "ready_to_submit": False,
        }
        result = WizardState.model_validate(self._graph.invoke(values))
        self._states[self.role] = result
        return result

    def advance(self) -> bool:
        before = self.current_step
        result = self._run("advance")
        if result.validation_error:
            self.notifier.error(result.validation_error)
            return False
        return result.current_step != before

    def retreat(self) -> None:
        self._run("retreat")

    # documents

    async def attach(self, file: UploadedFile, slot: Optional[str] = None) -> bool:
        role = self.role
        attachment = await self.state.documents.read(file, slot, report=self.notifier.error)
        if attachment is None:
            return False
        # the role may have changed while the file was being read
        self._states[role].documents.add(attachment)
        return True

    def detach(self, id_or_slot: str) -> None:
        self.state.documents.detach(id_or_slot)

    # submission

    async def submit(self) -> bool:
        if self.role == Role.PATIENT and self.signup_otp is not None:
            return await self.verify_signup_otp()
        if self.is_submitting:
            logger.debug("Submit ignored, %s signup already in flight", self.role.value)
            return False

        checked = self._run("submit")
        if not checked.ready_to_submit:
            self.notifier.error(checked.validation_error)
            return False

        role = self.role
        self.is_submitting = True
        try:
            response = await self.adapter.submit(checked)
        except SubmissionError as exc:
            self.notifier.error(str(exc))
            return False
        except (ApiError, requests.RequestException) as exc:
            logger.error("Signup error for %s: %s", role.value, exc)
            report_error(self.notifier, exc, role=role, store=self.store)
            return False
        finally:
            self.is_submitting = False

        if not response.get("success"):
            self.notifier.error(response.get("message") or SIGNUP_FAILED)
            return False

        if role == Role.PATIENT:
            self._await_signup_otp(checked.draft.get("phone", ""))
            self.notifier.success(PATIENT_SUCCESS_MESSAGE)
            return True

        self.notifier.success(SUCCESS_MESSAGE)
        self._states[role] = WizardState.initial(role)
        await self.notifier.wait_displayed()
        self.mode = "login"
        return True

    # patient account verification

    def _await_signup_otp(self, phone: str) -> None:
        flow = LoginFlow(
            self.adapter.services[Role.PATIENT],
            notifier=self.notifier,
            success_message=PATIENT_VERIFIED_MESSAGE,
            failure_message=PATIENT_VERIFY_FAILED,
        )
        flow.remember = True
        flow.mark_otp_sent(phone)
        self.signup_otp = flow

    async def verify_signup_otp(self) -> bool:
        flow = self.signup_otp
        if flow is None:
            return False
        if not await flow.verify():
            return False
        self.signup_otp = None
        self._states[Role.PATIENT] = WizardState.initial(Role.PATIENT)
        return True

    async def resend_signup_otp(self) -> bool:
        if self.signup_otp is None:
            return False
        return await self.signup_otp.resend_otp()
