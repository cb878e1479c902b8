"""Request parsing helpers shared by the JSON blueprints."""
from flask import request

from services.errors import ValidationFailed


def json_body() -> dict:
    """Return the request's JSON object body, or raise ValidationFailed."""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationFailed('Request body must be a JSON object.')
    return body


def optional_text(body: dict, key: str, max_length: int | None = None):
    value = body.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationFailed(f'{key} must be a string.')
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValidationFailed(f'{key} must be at most {max_length} characters.')
    return value or None


def optional_bool(body: dict, key: str, default=None):
    value = body.get(key, default)
    if value is not None and not isinstance(value, bool):
        raise ValidationFailed(f'{key} must be true or false.')
    return value


def query_flag(name: str) -> bool:
    return (request.args.get(name) or '').strip().lower() in {'1', 'true', 'yes'}
