from copy import deepcopy
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    DOCTOR = "doctor"
    PHARMACY = "pharmacy"
    LABORATORY = "laboratory"
    NURSE = "nurse"
    PATIENT = "patient"


MB = 1024 * 1024

NURSE_MIME_TYPES = frozenset({"application/pdf", "image/jpeg", "image/jpg", "image/png"})
PROVIDER_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "image/jpeg",
        "image/jpg",
        "image/png",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)

NURSING_CERTIFICATE = "nursingCertificate"
REGISTRATION_CERTIFICATE = "registrationCertificate"


class DocumentPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_size: int
    accepted_types: FrozenSet[str]
    size_label: str
    type_error: str
    # empty -> ordered list of documents, otherwise one file per named slot
    slots: Tuple[str, ...] = ()

    @property
    def uses_slots(self) -> bool:
        return bool(self.slots)


class FieldPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    phone_fields: FrozenSet[str] = frozenset({"phone"})
    postal_fields: FrozenSet[str] = frozenset()
    postal_length: Optional[int] = None
    money_fields: FrozenSet[str] = frozenset()
    # field -> max digits (None for unlimited)
    digit_fields: Dict[str, Optional[int]] = Field(default_factory=dict)
    # field -> (max length, trim whitespace)
    text_limits: Dict[str, Tuple[int, bool]] = Field(default_factory=dict)
    membership_fields: FrozenSet[str] = frozenset()
    tag_fields: FrozenSet[str] = frozenset()


class StepRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    required: Tuple[str, ...] = ()
    message: str = "Please fill in all required fields."
    check_formats: bool = False


class FinalRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    groups: Tuple[StepRule, ...]
    check_postal: bool = False
    # (slot, message) pairs that must hold an attachment
    required_slots: Tuple[Tuple[str, str], ...] = ()


class RoleSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    total_steps: int
    name_field: str
    name_label: str
    initial_draft: Dict[str, Any]
    fields: FieldPolicy
    documents: Optional[DocumentPolicy] = None
    step_rules: Dict[int, StepRule] = Field(default_factory=dict)
    final_rule: FinalRule

    def new_draft(self) -> Dict[str, Any]:
        return deepcopy(self.initial_draft)


def _address(*keys: str) -> Dict[str, str]:
    return {k: "" for k in keys}


FULL_ADDRESS = ("line1", "line2", "city", "state", "postalCode", "country")
STEP1_MESSAGE = "Please fill in all required fields in Step 1"

PROVIDER_DOCUMENTS = DocumentPolicy(
    max_size=10 * MB,
    accepted_types=PROVIDER_MIME_TYPES,
    size_label="10MB",
    type_error="Please upload a PDF, image or Word document (PDF, JPG, JPEG, PNG, DOC, DOCX)",
)

NURSE_DOCUMENTS = DocumentPolicy(
    max_size=5 * MB,
    accepted_types=NURSE_MIME_TYPES,
    size_label="5MB",
    type_error="Please upload a PDF or Image file (JPEG, JPG, PNG)",
    slots=(NURSING_CERTIFICATE, REGISTRATION_CERTIFICATE),
)

ORG_TEXT_LIMITS = {
    "ownerName": (100, False),
    "email": (100, True),
    "licenseNumber": (50, True),
    "gstNumber": (50, True),
}


DOCTOR = RoleSchema(
    role=Role.DOCTOR,
    total_steps=3,
    name_field="firstName",
    name_label="First name",
    initial_draft={
        "firstName": "",
        "lastName": "",
        "email": "",
        "phone": "",
        "specialization": "",
        "gender": "",
        "licenseNumber": "",
        "experienceYears": "",
        "qualification": "",
        "bio": "",
        "consultationFee": "",
        "languages": [],
        "consultationModes": [],
        "education": [{"institution": "", "degree": "", "year": ""}],
        "clinicDetails": {"name": "", "address": _address(*FULL_ADDRESS)},
        "termsAccepted": False,
    },
    fields=FieldPolicy(
        money_fields=frozenset({"consultationFee"}),
        digit_fields={"experienceYears": None},
        text_limits={
            "firstName": (100, False),
            "lastName": (100, False),
            "email": (100, True),
            "licenseNumber": (50, True),
        },
        membership_fields=frozenset({"consultationModes"}),
        tag_fields=frozenset({"languages"}),
    ),
    documents=PROVIDER_DOCUMENTS,
    step_rules={1: StepRule(required=("firstName", "email", "phone"), message=STEP1_MESSAGE)},
    final_rule=FinalRule(
        groups=(
            StepRule(
                required=(
                    "firstName",
                    "email",
                    "phone",
                    "specialization",
                    "gender",
                    "licenseNumber",
                ),
            ),
        ),
    ),
)

PHARMACY = RoleSchema(
    role=Role.PHARMACY,
    total_steps=3,
    name_field="pharmacyName",
    name_label="Pharmacy name",
    initial_draft={
        "pharmacyName": "",
        "ownerName": "",
        "email": "",
        "phone": "",
        "licenseNumber": "",
        "gstNumber": "",
        "address": _address(*FULL_ADDRESS),
        "timings": "",
        "contactPerson": {"name": "", "phone": "", "email": ""},
        "termsAccepted": False,
    },
    fields=FieldPolicy(
        phone_fields=frozenset({"phone", "contactPerson.phone"}),
        text_limits={"pharmacyName": (100, False), **ORG_TEXT_LIMITS},
    ),
    documents=PROVIDER_DOCUMENTS,
    step_rules={1: StepRule(required=("pharmacyName", "email", "phone"), message=STEP1_MESSAGE)},
    final_rule=FinalRule(
        groups=(StepRule(required=("pharmacyName", "email", "phone", "licenseNumber")),),
    ),
)

LABORATORY = RoleSchema(
    role=Role.LABORATORY,
    total_steps=3,
    name_field="labName",
    name_label="Laboratory name",
    initial_draft={
        "labName": "",
        "ownerName": "",
        "email": "",
        "phone": "",
        "licenseNumber": "",
        "gstNumber": "",
        "address": _address(*FULL_ADDRESS),
        "testsOffered": "",
        "timings": "",
        "contactPerson": {"name": "", "phone": "", "email": ""},
        "operatingHours": {"opening": "", "closing": "", "days": []},
        "termsAccepted": False,
    },
    fields=FieldPolicy(
        phone_fields=frozenset({"phone", "contactPerson.phone"}),
        text_limits={"labName": (100, False), **ORG_TEXT_LIMITS},
        membership_fields=frozenset({"operatingHours.days"}),
    ),
    documents=PROVIDER_DOCUMENTS,
    step_rules={1: StepRule(required=("labName", "email", "phone"), message=STEP1_MESSAGE)},
    final_rule=FinalRule(
        groups=(StepRule(required=("labName", "email", "phone", "licenseNumber")),),
    ),
)

NURSE_STEP1 = ("fullName", "email", "phone")
NURSE_STEP2 = ("address.line1", "address.city", "address.state", "address.postalCode")
NURSE_STEP3 = ("qualification", "registrationNumber", "registrationCouncilName")

NURSE = RoleSchema(
    role=Role.NURSE,
    total_steps=4,
    name_field="fullName",
    name_label="Full name",
    initial_draft={
        "fullName": "",
        "email": "",
        "phone": "",
        "address": _address("line1", "city", "state", "postalCode"),
        "qualification": "",
        "experienceYears": "",
        "specialization": "",
        "fees": "",
        "registrationNumber": "",
        "registrationCouncilName": "",
        "termsAccepted": False,
    },
    fields=FieldPolicy(
        postal_fields=frozenset({"postalCode", "address.postalCode"}),
        postal_length=6,
        money_fields=frozenset({"fees"}),
        digit_fields={"experienceYears": 2},
        text_limits={
            "fullName": (100, False),
            "qualification": (100, False),
            "specialization": (100, False),
            "registrationCouncilName": (100, False),
            "email": (100, True),
            "registrationNumber": (50, True),
        },
    ),
    documents=NURSE_DOCUMENTS,
    step_rules={
        1: StepRule(required=NURSE_STEP1, message=STEP1_MESSAGE, check_formats=True),
        2: StepRule(required=NURSE_STEP2, message="Please fill in all address fields in Step 2"),
        3: StepRule(
            required=NURSE_STEP3,
            message="Please fill in all required professional details in Step 3",
        ),
    },
    final_rule=FinalRule(
        groups=(
            StepRule(required=NURSE_STEP1, message="Please fill in all required fields in Step 1."),
            StepRule(required=NURSE_STEP2, message="Please fill in all address fields in Step 2."),
            StepRule(
                required=NURSE_STEP3,
                message="Please fill in all required professional details in Step 3.",
            ),
        ),
        check_postal=True,
        required_slots=(
            (NURSING_CERTIFICATE, "Please upload your Nursing Certificate in Step 4."),
            (
                REGISTRATION_CERTIFICATE,
                "Please upload your Registration/License Certificate in Step 4.",
            ),
        ),
    ),
)

PATIENT = RoleSchema(
    role=Role.PATIENT,
    total_steps=1,
    name_field="firstName",
    name_label="First name",
    initial_draft={
        "firstName": "",
        "lastName": "",
        "email": "",
        "phone": "",
        "termsAccepted": False,
    },
    fields=FieldPolicy(
        text_limits={
            "firstName": (50, True),
            "lastName": (50, True),
            "email": (100, True),
        },
    ),
    final_rule=FinalRule(
        groups=(StepRule(required=("firstName", "email", "phone")),),
    ),
)

SCHEMAS: Dict[Role, RoleSchema] = {
    schema.role: schema for schema in (DOCTOR, PHARMACY, LABORATORY, NURSE, PATIENT)
}


def get_schema(role: Role) -> RoleSchema:
    return SCHEMAS[Role(role)]
