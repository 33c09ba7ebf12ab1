from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field

from registration.documents import DocumentStore
from registration.roles import Role, get_schema

Action = Literal["advance", "retreat", "submit"]


class WizardState(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    role: Role = Field(description="Account type being registered")
    current_step: int = Field(default=1, description="1-based step index")
    total_steps: int = Field(default=1)
    draft: Dict[str, Any] = Field(default_factory=dict, description="Form values keyed by field name")
    documents: DocumentStore = Field(default_factory=DocumentStore)

    action: Action = "advance"
    validation_error: str = ""
    missing_fields: List[str] = Field(default_factory=list)
    ready_to_submit: bool = False

    @classmethod
    def initial(cls, role: Role) -> "WizardState":
        schema = get_schema(role)
        return cls(
            role=schema.role,
            total_steps=schema.total_steps,
            draft=schema.new_draft(),
            documents=DocumentStore(policy=schema.documents),
        )
