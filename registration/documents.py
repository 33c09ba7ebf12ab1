import asyncio
import base64
import logging
import mimetypes
import uuid
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from registration.roles import DocumentPolicy

logger = logging.getLogger(__name__)

Reporter = Callable[[str], None]


class UploadedFile(BaseModel):
    name: str
    content_type: str = Field(description="MIME type as reported by the client")
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Union[str, Path], content_type: Optional[str] = None) -> "UploadedFile":
        p = Path(path)
        guessed, _ = mimetypes.guess_type(p.name)
        return cls(
            name=p.name,
            content_type=content_type or guessed or "application/octet-stream",
            data=p.read_bytes(),
        )


class Attachment(BaseModel):
    id: str
    slot: str = ""
    file: UploadedFile
    preview: str = Field(default="", description="base64 data URL")
    name: str
    content_type: str
    size: int


def to_data_url(file: UploadedFile) -> str:
    encoded = base64.b64encode(file.data).decode("ascii")
    return f"data:{file.content_type};base64,{encoded}"


def _warn(message: str) -> None:
    logger.warning(message)


class DocumentStore(BaseModel):
    """Attachments for one role's draft.

    Slot policies keep one file per named slot, a new attach replaces the old
    one. List policies keep every accepted file in upload order.
    """

    policy: Optional[DocumentPolicy] = None
    entries: List[Attachment] = Field(default_factory=list)

    def rejection(self, file: UploadedFile, slot: Optional[str] = None) -> Optional[str]:
        if self.policy is None:
            return "Documents are not required for this account type."
        if self.policy.uses_slots and slot not in self.policy.slots:
            return f"Unknown document slot: {slot}"
        if file.size > self.policy.max_size:
            return f"File {file.name} is too large. Maximum size is {self.policy.size_label}."
        if file.content_type not in self.policy.accepted_types:
            return self.policy.type_error
        return None

    async def read(
        self,
        file: UploadedFile,
        slot: Optional[str] = None,
        report: Reporter = _warn,
    ) -> Optional[Attachment]:
        """Check ``file`` against the policy and encode its preview off the event loop."""
        reason = self.rejection(file, slot)
        if reason:
            report(reason)
            return None
        preview = await asyncio.to_thread(to_data_url, file)
        return Attachment(
            id=uuid.uuid4().hex,
            slot=slot or "",
            file=file,
            preview=preview,
            name=file.name,
            content_type=file.content_type,
            size=file.size,
        )

    def add(self, attachment: Attachment) -> None:
        if attachment.slot:
            self.entries = [e for e in self.entries if e.slot != attachment.slot]
        self.entries = self.entries + [attachment]

    async def attach(
        self,
        file: UploadedFile,
        slot: Optional[str] = None,
        report: Reporter = _warn,
    ) -> Optional[Attachment]:
        attachment = await self.read(file, slot, report)
        if attachment is not None:
            self.add(attachment)
        return attachment

    def detach(self, id_or_slot: str) -> None:
        self.entries = [
            e for e in self.entries if e.id != id_or_slot and e.slot != id_or_slot
        ]

    def get_slot(self, slot: str) -> Optional[Attachment]:
        for entry in self.entries:
            if entry.slot == slot:
                return entry
        return None

    def has_slot(self, slot: str) -> bool:
        return self.get_slot(slot) is not None

    def to_base64_payload(self) -> List[Dict[str, str]]:
        return [
            {
                "name": e.name,
                "type": e.content_type,
                "data": e.preview or to_data_url(e.file),
            }
            for e in self.entries
        ]

    def clear(self) -> None:
        self.entries = []
