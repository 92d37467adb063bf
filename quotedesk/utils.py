"""
Utility functions shared across the blueprints. This includes:
- json_body: the request's JSON object (or an empty dict for an empty body).
- json_list: a JSON array from the body, under a key or as the whole body.
- created: a 201 JSON response.
"""

from typing import Any, List

from flask import jsonify, request

from .errors import ValidationError


def json_body() -> Any:
    """
    Return the parsed JSON body.

    Non-object bodies are returned as-is so schema readers can reject them with a clear message.
    """
    data = request.get_json(silent=True)
    if data is None:
        if request.get_data(cache=True):
            raise ValidationError("Request body must be valid JSON.")
        return {}
    return data


def json_list(key: str) -> List[Any]:
    """Accept either {"<key>": [...]} or a bare JSON array."""
    data = json_body()
    if isinstance(data, dict):
        data = data.get(key)
    if not isinstance(data, list):
        raise ValidationError(f"{key} must be a list.")
    return data


def created(payload: Any):
    return jsonify(payload), 201
