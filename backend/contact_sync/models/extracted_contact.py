"""Domain model for persisted contact extraction results."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class ExtractedContactRecord:
    """Contact fields extracted from one transcript. At most one per transcript."""

    id: str
    transcript_id: str
    contact_info: dict[str, Any]
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Serialize record to dictionary."""
        return {
            "id": self.id,
            "transcript_id": self.transcript_id,
            "contact_info": dict(self.contact_info),
            "created_at": self.created_at.isoformat(),
        }
