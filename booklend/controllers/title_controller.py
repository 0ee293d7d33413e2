# booklend/controllers/title_controller.py

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from booklend.services.title_service import TitleService
from booklend.utils.decorators import role_required
from booklend.utils.payload import json_body
from booklend.utils.identity import STAFF_ROLES

title_bp = Blueprint("titles", __name__, url_prefix="/titles")

TITLE_FIELDS = ("title", "author", "details", "price", "course", "branch")


@title_bp.get("/")
@jwt_required()
def search_titles():
    args = request.args
    result = TitleService.search(
        title=args.get("title"),
        author=args.get("author"),
        copy_id=args.get("copy_id"),
        page=args.get("page", 1),
        per_page=args.get("per_page", 10),
    )
    return jsonify({
        "success": True,
        "data": [t.to_dict(with_copies=True) for t in result.items],
        "pagination": {
            "total": result.total,
            "page": result.page,
            "per_page": result.per_page,
            "pages": result.pages,
        },
    })


@title_bp.post("/")
@role_required(*STAFF_ROLES)
def register_title():
    data = json_body()
    book, copies = TitleService.register_title(
        *(data.get(k) for k in TITLE_FIELDS),
        stock=data.get("stock"),
    )
    return jsonify({
        "success": True,
        "message": "Book registered with all copies",
        "data": book.to_dict(with_copies=True),
    }), 201


@title_bp.get("/by-copy/<copy_id>")
@jwt_required()
def get_by_copy(copy_id: str):
    book, copy, stock = TitleService.get_by_copy_id(copy_id)
    data = book.to_dict()
    data["stock"] = stock
    return jsonify({"success": True, "data": data, "copy": copy.to_dict()})


@title_bp.put("/by-copy/<copy_id>")
@role_required(*STAFF_ROLES)
def update_title(copy_id: str):
    data = json_body()
    fields = {k: data[k] for k in TITLE_FIELDS if k in data}
    book, added = TitleService.update_title(copy_id, fields, data.get("stock"))
    return jsonify({
        "success": True,
        "message": "Book updated successfully",
        "data": book.to_dict(),
        "added_copies": [c.id for c in added],
    })
