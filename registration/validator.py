import re
from typing import Any, Dict, List, Literal, Mapping, Optional

from registration.documents import DocumentStore
from registration.mutators import get_path
from registration.roles import SCHEMAS, Role, RoleSchema, StepRule
from registration.state import WizardState

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

TERMS_MESSAGE = "Please accept the terms to continue."
EMAIL_MESSAGE = "Please enter a valid email address"
PHONE_MESSAGE = "Please enter a valid 10-digit mobile number"
POSTAL_MESSAGE = "Please enter a valid 6-digit pincode"


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match((value or "").strip()))


class StepValidator:
    def __init__(self, schemas: Optional[Mapping[Role, RoleSchema]] = None):
        self.schemas = schemas or SCHEMAS

    @staticmethod
    def missing(rule: StepRule, draft: Dict[str, Any]) -> List[str]:
        return sorted(name for name in rule.required if is_blank(get_path(draft, name)))

    @staticmethod
    def format_error(draft: Dict[str, Any]) -> Optional[str]:
        if not is_valid_email(draft.get("email", "")):
            return EMAIL_MESSAGE
        if len(draft.get("phone", "")) != 10:
            return PHONE_MESSAGE
        return None

    def check_step(self, schema: RoleSchema, draft: Dict[str, Any], step: int) -> Optional[str]:
        rule = schema.step_rules.get(step)
        if rule is None:
            return None
        if self.missing(rule, draft):
            return rule.message
        if rule.check_formats:
            return self.format_error(draft)
        return None

    def check_submission(
        self, schema: RoleSchema, draft: Dict[str, Any], documents: DocumentStore
    ) -> Optional[str]:
        if not draft.get("termsAccepted"):
            return TERMS_MESSAGE

        final = schema.final_rule
        for group in final.groups:
            if self.missing(group, draft):
                return group.message

        if len(draft.get(schema.name_field, "").strip()) < 2:
            return f"{schema.name_label} must be at least 2 characters"

        error = self.format_error(draft)
        if error:
            return error

        if final.check_postal and len(get_path(draft, "address.postalCode", "")) != 6:
            return POSTAL_MESSAGE

        for slot, message in final.required_slots:
            if not documents.has_slot(slot):
                return message
        return None

    def validate_current_step(self, state: WizardState) -> WizardState:
        schema = self.schemas[state.role]
        rule = schema.step_rules.get(state.current_step)
        missing = self.missing(rule, state.draft) if rule else []
        error = self.check_step(schema, state.draft, state.current_step) or ""
        return state.model_copy(update={"validation_error": error, "missing_fields": missing})

    def validate_submission(self, state: WizardState) -> WizardState:
        schema = self.schemas[state.role]
        missing: List[str] = []
        for group in schema.final_rule.groups:
            for name in self.missing(group, state.draft):
                if name not in missing:
                    missing.append(name)
        error = self.check_submission(schema, state.draft, state.documents) or ""
        return state.model_copy(
            update={"validation_error": error, "missing_fields": sorted(missing)}
        )

    @staticmethod
    def should_advance(state: WizardState) -> Literal["blocked", "advance"]:
        return "advance" if state.validation_error == "" else "blocked"

    @staticmethod
    def should_submit(state: WizardState) -> Literal["blocked", "ready"]:
        return "ready" if state.validation_error == "" else "blocked"
