"""Domain records for standup sessions and participant responses."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ResponseStatus(str, Enum):
    PENDING = "pending"
    ANSWERED = "answered"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self is not ResponseStatus.PENDING

    def can_transition_to(self, target: "ResponseStatus") -> bool:
        """Only pending records move, and only into a terminal state."""
        return self is ResponseStatus.PENDING and target.is_terminal


@dataclass(frozen=True)
class Participant:
    id: str
    display_name: str


@dataclass(frozen=True)
class Session:
    id: Any
    date: str
    created_at: datetime
    rollup_published_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Session":
        return cls(
            id=doc["_id"],
            date=doc["date"],
            created_at=doc["created_at"],
            rollup_published_at=doc.get("rollup_published_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "date": self.date,
            "created_at": self.created_at.isoformat(),
            "rollup_published_at": self.rollup_published_at.isoformat() if self.rollup_published_at else None,
        }


@dataclass(frozen=True)
class ResponseRecord:
    """One participant's progress through the questions of a session."""

    id: Any
    session_id: Any
    participant_id: str
    display_name: str
    questions: Tuple[str, ...]
    answers: Tuple[str, ...] = ()
    status: ResponseStatus = ResponseStatus.PENDING
    created_at: Optional[datetime] = field(default=None, compare=False)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ResponseRecord":
        return cls(
            id=doc["_id"],
            session_id=doc["session_id"],
            participant_id=doc["participant_id"],
            display_name=doc["display_name"],
            questions=tuple(doc.get("questions") or ()),
            answers=tuple(doc.get("answers") or ()),
            status=ResponseStatus(doc["status"]),
            created_at=doc.get("created_at"),
        )

    @property
    def next_question_index(self) -> int:
        return len(self.answers)

    @property
    def is_complete(self) -> bool:
        return len(self.answers) >= len(self.questions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "session_id": str(self.session_id),
            "participant_id": self.participant_id,
            "display_name": self.display_name,
            "questions": list(self.questions),
            "answers": list(self.answers),
            "status": self.status.value,
        }
