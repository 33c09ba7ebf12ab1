import asyncio
import logging
import math
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, EmailStr, ValidationError
from pydantic.alias_generators import to_camel

from api.services import RoleAuthService, SignupFile, SignupRequest
from registration.documents import DocumentStore
from registration.mutators import get_path
from registration.roles import Role
from registration.state import WizardState

logger = logging.getLogger(__name__)

EMAIL_MESSAGE = "Please enter a valid email address"


class SubmissionError(Exception):
    """The draft passed the wizard checks but cannot be turned into a request."""


def blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and value.strip() == "":
        return None
    if isinstance(value, list) and not value:
        return None
    return value


def parse_money(value: Any) -> Optional[float]:
    """Monetary strings become numbers here and nowhere else."""
    text = str(value or "").strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_int(value: Any) -> Optional[int]:
    text = str(value or "").strip()
    return int(text) if text.isdigit() else None


def any_filled(obj: Mapping[str, Any]) -> bool:
    return any(
        (len(v) > 0) if isinstance(v, list) else bool(v)
        for v in (obj or {}).values()
    )


def filled_or_none(obj: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    return dict(obj) if obj and any_filled(obj) else None


class SignupPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: EmailStr
    phone: str


class EducationEntry(BaseModel):
    institution: str = ""
    degree: str = ""
    year: str = ""


class DoctorSignup(SignupPayload):
    first_name: str
    last_name: Optional[str] = None
    specialization: str
    gender: str
    license_number: str
    experience_years: Optional[int] = None
    qualification: Optional[str] = None
    bio: Optional[str] = None
    consultation_fee: Optional[float] = None
    languages: Optional[List[str]] = None
    consultation_modes: Optional[List[str]] = None
    education: Optional[List[EducationEntry]] = None
    clinic_name: Optional[str] = None
    clinic_address: Optional[Dict[str, str]] = None


class PharmacySignup(SignupPayload):
    pharmacy_name: str
    owner_name: Optional[str] = None
    license_number: str
    gst_number: Optional[str] = None
    address: Optional[Dict[str, str]] = None
    timings: Optional[List[str]] = None
    contact_person: Optional[Dict[str, str]] = None


class LaboratorySignup(SignupPayload):
    lab_name: str
    owner_name: Optional[str] = None
    license_number: str
    gst_number: Optional[str] = None
    address: Optional[Dict[str, str]] = None
    timings: Optional[List[str]] = None
    contact_person: Optional[Dict[str, str]] = None
    operating_hours: Optional[Dict[str, Any]] = None


class NurseSignup(SignupPayload):
    full_name: str
    address: Dict[str, str]
    qualification: str
    experience_years: Optional[int] = None
    specialization: Optional[str] = None
    fees: Optional[float] = None
    registration_number: str
    registration_council_name: str


class PatientSignup(SignupPayload):
    first_name: str
    last_name: Optional[str] = None


def _doctor(draft: Dict[str, Any]) -> Dict[str, Any]:
    education = [
        e for e in draft.get("education", []) if e.get("institution") or e.get("degree") or e.get("year")
    ]
    return {
        "first_name": draft["firstName"],
        "last_name": blank_to_none(draft.get("lastName")),
        "specialization": draft["specialization"],
        "gender": draft["gender"],
        "license_number": draft["licenseNumber"],
        "experience_years": parse_int(draft.get("experienceYears")),
        "qualification": blank_to_none(draft.get("qualification")),
        "bio": blank_to_none(draft.get("bio")),
        "consultation_fee": parse_money(draft.get("consultationFee")),
        "languages": blank_to_none(draft.get("languages")),
        "consultation_modes": blank_to_none(draft.get("consultationModes")),
        "education": education or None,
        "clinic_name": blank_to_none(get_path(draft, "clinicDetails.name")),
        "clinic_address": filled_or_none(get_path(draft, "clinicDetails.address")),
    }


def _organisation(draft: Dict[str, Any], name_field: str, name_key: str) -> Dict[str, Any]:
    timings = blank_to_none(draft.get("timings"))
    return {
        name_key: draft[name_field],
        "owner_name": blank_to_none(draft.get("ownerName")),
        "license_number": draft["licenseNumber"],
        "gst_number": blank_to_none(draft.get("gstNumber")),
        "address": filled_or_none(draft.get("address")),
        "timings": [timings] if timings else None,
        "contact_person": filled_or_none(draft.get("contactPerson")),
    }


def _pharmacy(draft: Dict[str, Any]) -> Dict[str, Any]:
    return _organisation(draft, "pharmacyName", "pharmacy_name")


def _laboratory(draft: Dict[str, Any]) -> Dict[str, Any]:
    values = _organisation(draft, "labName", "lab_name")
    values["operating_hours"] = filled_or_none(draft.get("operatingHours"))
    return values


def _nurse(draft: Dict[str, Any]) -> Dict[str, Any]:
    address = draft.get("address", {})
    return {
        "full_name": draft["fullName"],
        "address": {k: address.get(k, "") for k in ("line1", "city", "state", "postalCode")},
        "qualification": draft["qualification"],
        "experience_years": parse_int(draft.get("experienceYears")),
        "specialization": blank_to_none(draft.get("specialization")),
        "fees": parse_money(draft.get("fees")),
        "registration_number": draft["registrationNumber"],
        "registration_council_name": draft["registrationCouncilName"],
    }


def _patient(draft: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "first_name": draft["firstName"],
        "last_name": blank_to_none(draft.get("lastName")),
    }


PAYLOADS: Dict[Role, Tuple[Type[SignupPayload], Callable[[Dict[str, Any]], Dict[str, Any]]]] = {
    Role.DOCTOR: (DoctorSignup, _doctor),
    Role.PHARMACY: (PharmacySignup, _pharmacy),
    Role.LABORATORY: (LaboratorySignup, _laboratory),
    Role.NURSE: (NurseSignup, _nurse),
    Role.PATIENT: (PatientSignup, _patient),
}


class SubmissionAdapter:
    """Turns a validated wizard state into the role's signup call."""

    def __init__(
        self,
        services: Mapping[Role, RoleAuthService],
        encoding: Literal["multipart", "base64"] = "multipart",
    ):
        self.services = services
        self.encoding = encoding

    @staticmethod
    def build_payload(role: Role, draft: Dict[str, Any]) -> Dict[str, Any]:
        model, extract = PAYLOADS[role]
        try:
            payload = model(
                email=draft.get("email", "").strip(),
                phone=draft.get("phone", ""),
                **extract(draft),
            )
        except ValidationError as exc:
            fields = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}
            if "email" in fields:
                raise SubmissionError(EMAIL_MESSAGE) from exc
            raise SubmissionError("Please fill in all required fields.") from exc
        return payload.model_dump(by_alias=True, exclude_none=True, mode="json")

    def build_request(self, state: WizardState) -> SignupRequest:
        fields = self.build_payload(state.role, state.draft)
        documents: DocumentStore = state.documents

        if self.encoding == "base64":
            encoded = documents.to_base64_payload()
            if encoded:
                fields["documents"] = encoded
            return SignupRequest(encoding="base64", fields=fields)

        files = [
            SignupFile(
                field=e.slot or "documents",
                name=e.name,
                content_type=e.content_type,
                data=e.file.data,
            )
            for e in documents.entries
        ]
        return SignupRequest(encoding="multipart", fields=fields, files=files)

    async def submit(self, state: WizardState) -> Dict[str, Any]:
        request = self.build_request(state)
        service = self.services[state.role]
        logger.info(
            "Submitting %s signup (%s, %d document(s))",
            state.role.value,
            request.encoding,
            len(state.documents.entries),
        )
        return await asyncio.to_thread(service.signup, request)
