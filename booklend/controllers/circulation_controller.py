# booklend/controllers/circulation_controller.py

from flask import Blueprint, jsonify

from booklend.models.borrower import BorrowerKind
from booklend.services.circulation_service import CirculationService
from booklend.services.copy_catalog import CopyCatalog
from booklend.utils.decorators import role_required
from booklend.utils.payload import json_body
from booklend.utils.identity import (
    STAFF_ROLES,
    borrower_from_actor,
    borrower_from_payload,
    current_actor,
)

circulation_bp = Blueprint("circulation", __name__, url_prefix="/circulation")


@circulation_bp.post("/issue")
@role_required(*STAFF_ROLES)
def issue_books():
    data = json_body()
    borrower = borrower_from_payload(data)
    librarian = current_actor()
    result = CirculationService.issue_batch(
        borrower, librarian.user_id, data.get("copy_ids") or data.get("bookIds"),
        remarks=data.get("remarks"),
    )
    if result.all_failed:
        return jsonify({
            "success": False,
            "message": "No books could be issued. All requested books are either unavailable or already issued.",
            **result.to_dict(),
        }), 400
    return jsonify({"success": True, "message": "Books issued successfully.", **result.to_dict()})


@circulation_bp.post("/return")
@role_required(*STAFF_ROLES)
def return_books():
    data = json_body()
    borrower = borrower_from_payload(data)
    result = CirculationService.return_batch(borrower, data.get("copy_ids") or data.get("bookIds"))
    if result.all_failed:
        return jsonify({
            "success": False,
            "message": "No valid issued books found to return.",
            **result.to_dict(),
        }), 400
    return jsonify({"success": True, "message": "Books returned successfully.", **result.to_dict()})


@circulation_bp.get("/borrowers/<kind>/<borrower_id>/active")
@role_required(*STAFF_ROLES)
def borrower_active(kind: str, borrower_id: str):
    views = CirculationService.active_loans(borrower_id, BorrowerKind.parse(kind))
    return jsonify({"success": True, "data": [v.to_dict() for v in views]})


@circulation_bp.get("/borrowers/<kind>/<borrower_id>/history")
@role_required(*STAFF_ROLES)
def borrower_history(kind: str, borrower_id: str):
    views = CirculationService.history(borrower_id, BorrowerKind.parse(kind))
    return jsonify({"success": True, "data": [v.to_dict() for v in views]})


@circulation_bp.get("/me/active")
@role_required("student", "faculty")
def my_active():
    borrower = borrower_from_actor(current_actor())
    views = CirculationService.active_loans(borrower.borrower_id, borrower.kind)
    return jsonify({"success": True, "data": [v.to_dict() for v in views]})


@circulation_bp.get("/me/history")
@role_required("student", "faculty")
def my_history():
    borrower = borrower_from_actor(current_actor())
    views = CirculationService.history(borrower.borrower_id, borrower.kind)
    return jsonify({"success": True, "data": [v.to_dict() for v in views]})


@circulation_bp.get("/copies/<copy_id>/track")
@role_required(*STAFF_ROLES)
def track_copy(copy_id: str):
    track = CirculationService.track_copy(copy_id)
    return jsonify({"success": True, "data": track.to_dict()})


@circulation_bp.get("/dashboard")
@role_required(*STAFF_ROLES)
def dashboard():
    return jsonify({"success": True, "data": CopyCatalog.dashboard_counts()})
