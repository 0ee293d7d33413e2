from dataclasses import dataclass

from flask_jwt_extended import get_jwt, get_jwt_identity

from booklend.errors import ValidationError
from booklend.models.borrower import BorrowerKind, BorrowerRef

STAFF_ROLES = ("admin", "librarian")
BORROWER_ROLES = {"student": BorrowerKind.STUDENT, "faculty": BorrowerKind.FACULTY}


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: str


def current_actor() -> Actor:
    """{user_id, role} as issued by the auth service; trusted, not re-checked."""
    return Actor(user_id=str(get_jwt_identity()), role=(get_jwt() or {}).get("role"))


def borrower_from_actor(actor: Actor) -> BorrowerRef:
    kind = BORROWER_ROLES.get(actor.role)
    if kind is None:
        raise ValidationError(f"Role {actor.role!r} cannot borrow")
    return BorrowerRef(actor.user_id, kind)


def borrower_from_payload(data: dict) -> BorrowerRef:
    """
    Resolve the borrower once at the boundary. Accepts
    {"borrower_kind": "student", "borrower_id": ...} or the legacy
    {"userType": "student", "fileNo": ...} / {"userType": "faculty", "employeeId": ...}.
    """
    kind = BorrowerKind.parse(data.get("borrower_kind") or data.get("userType"))
    if kind is BorrowerKind.STUDENT:
        borrower_id = data.get("borrower_id") or data.get("fileNo")
    else:
        borrower_id = data.get("borrower_id") or data.get("employeeId")
    if not borrower_id or not str(borrower_id).strip():
        raise ValidationError("Borrower identifier (file number or employee id) is required")
    return BorrowerRef(str(borrower_id).strip(), kind)
