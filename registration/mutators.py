import re
from typing import Any, Dict, List, Optional, Sequence

from registration.roles import RoleSchema

NON_DIGIT = re.compile(r"\D")
NON_MONEY = re.compile(r"[^\d.]")

EMPTY_EDUCATION = {"institution": "", "degree": "", "year": ""}


def digits_only(value: str, limit: Optional[int] = None) -> str:
    digits = NON_DIGIT.sub("", value or "")
    return digits[:limit] if limit is not None else digits


def normalize_money(value: str) -> str:
    """Keep digits and the first decimal point; digits after later dots are joined on."""
    cleaned = NON_MONEY.sub("", value or "")
    parts = cleaned.split(".")
    if len(parts) > 1:
        return parts[0] + "." + "".join(parts[1:])
    return parts[0]


def get_path(obj: Any, name: str, default: Any = None) -> Any:
    current = obj
    for part in name.split("."):
        if isinstance(current, dict):
            if part not in current:
                return default
            current = current[part]
        elif isinstance(current, list):
            if not part.isdigit() or int(part) >= len(current):
                return default
            current = current[int(part)]
        else:
            return default
    return current


def set_path(obj: Any, parts: Sequence[str], value: Any) -> Any:
    """Return a copy of ``obj`` with ``value`` at ``parts``; only the containers on the path are copied."""
    if not parts:
        return value
    head, rest = parts[0], parts[1:]
    if isinstance(obj, list):
        if not head.isdigit() or int(head) >= len(obj):
            return obj
        index = int(head)
        updated = list(obj)
        updated[index] = set_path(obj[index], rest, value)
        return updated
    updated = dict(obj) if isinstance(obj, dict) else {}
    updated[head] = set_path(updated.get(head, {}), rest, value)
    return updated


class FieldMutator:
    """Applies one input event to a draft and returns the new draft."""

    def __init__(self, schema: RoleSchema):
        self.schema = schema
        self.policy = schema.fields

    def normalize(self, name: str, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        policy = self.policy

        if name in policy.phone_fields:
            return digits_only(value, 10)
        if name in policy.postal_fields:
            return digits_only(value, policy.postal_length)
        if name in policy.money_fields:
            return normalize_money(value)
        if name in policy.digit_fields:
            return digits_only(value, policy.digit_fields[name])
        if name in policy.text_limits:
            limit, trim = policy.text_limits[name]
            return (value.strip() if trim else value)[:limit]
        return value

    def apply(
        self,
        draft: Dict[str, Any],
        name: str,
        value: Any = "",
        input_type: str = "text",
        checked: bool = False,
    ) -> Dict[str, Any]:
        if name in self.policy.membership_fields:
            return self.toggle_member(draft, name, value, checked)
        if name in self.policy.tag_fields:
            # tags only change on Enter, see key_press
            return draft
        if input_type == "checkbox":
            return set_path(draft, name.split("."), bool(checked))

        # "postalCode" without a prefix still lands in the address
        if name in self.policy.postal_fields and "." not in name and name not in draft:
            target = "address." + name
        else:
            target = name
        return set_path(draft, target.split("."), self.normalize(name, value))

    def toggle_member(self, draft: Dict[str, Any], name: str, value: str, checked: bool) -> Dict[str, Any]:
        members: List[str] = list(get_path(draft, name, []) or [])
        if checked and value not in members:
            members.append(value)
        elif not checked and value in members:
            members = [m for m in members if m != value]
        else:
            return draft
        return set_path(draft, name.split("."), members)

    def key_press(self, draft: Dict[str, Any], name: str, raw: str, key: str) -> Dict[str, Any]:
        if key != "Enter" or name not in self.policy.tag_fields:
            return draft
        tag = (raw or "").strip()
        tags: List[str] = list(get_path(draft, name, []) or [])
        if not tag or tag in tags:
            return draft
        return set_path(draft, name.split("."), tags + [tag])

    def remove_tag(self, draft: Dict[str, Any], name: str, tag: str) -> Dict[str, Any]:
        tags = list(get_path(draft, name, []) or [])
        if tag not in tags:
            return draft
        return set_path(draft, name.split("."), [t for t in tags if t != tag])

    def add_education_entry(self, draft: Dict[str, Any]) -> Dict[str, Any]:
        if "education" not in draft:
            return draft
        return {**draft, "education": list(draft["education"]) + [dict(EMPTY_EDUCATION)]}

    def remove_education_entry(self, draft: Dict[str, Any], index: int) -> Dict[str, Any]:
        entries = list(draft.get("education") or [])
        if len(entries) <= 1 or not 0 <= index < len(entries):
            return draft
        return {**draft, "education": [e for i, e in enumerate(entries) if i != index]}
