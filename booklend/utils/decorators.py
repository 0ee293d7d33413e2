from functools import wraps

from flask import current_app, jsonify, request
from flask_jwt_extended import verify_jwt_in_request

from booklend.utils.identity import current_actor


def role_required(*roles):
    """
    Token must be valid and its `role` claim one of `roles`.
    Refusals use the same JSON shape as LibraryError responses.
    """
    allowed = frozenset(roles)

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            actor = current_actor()
            if actor.role not in allowed:
                current_app.logger.warning(
                    f"[auth] refused {request.method} {request.path}: user={actor.user_id} role={actor.role}"
                )
                return jsonify({
                    "success": False,
                    "message": f"Role {actor.role!r} may not access this resource",
                    "error": "Forbidden",
                }), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator
