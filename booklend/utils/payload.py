from flask import request

from booklend.errors import ValidationError


def json_body() -> dict:
    """Request JSON as an object; missing body is empty, anything else is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
