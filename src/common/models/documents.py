from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone


class KeyWrapping(str, Enum):
    NONE = "NONE"
    KMS = "KMS"


@dataclass(frozen=True)
class DocumentRef:
    document_id: str
    owner_id: str


@dataclass
class SensitiveDocument:
    document_id: str
    owner_id: str
    storage_key: str
    encryption_key: str
    mime_type: str
    size: int
    key_wrapping: KeyWrapping = KeyWrapping.NONE
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def ref(self) -> DocumentRef:
        return DocumentRef(self.document_id, self.owner_id)
