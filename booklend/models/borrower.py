from dataclasses import dataclass
from enum import Enum

from booklend.errors import ValidationError


class BorrowerKind(Enum):
    STUDENT = "Student"
    FACULTY = "Faculty"

    @classmethod
    def parse(cls, raw) -> "BorrowerKind":
        """Accepts 'student', 'Student', 'FACULTY' ... and enum members."""
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            raise ValidationError(f"Borrower kind must be a string, got {type(raw).__name__}")
        value = raw.strip().lower()
        for kind in cls:
            if kind.value.lower() == value:
                return kind
        raise ValidationError(f"Unknown borrower kind: {raw!r}")


@dataclass(frozen=True)
class BorrowerRef:
    """Resolved borrower identity (file number or employee id + kind)."""

    borrower_id: str
    kind: BorrowerKind
