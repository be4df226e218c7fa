"""HTTP blueprints and shared response helpers."""
from flask import jsonify, request

from retail.exceptions import InvalidRequestError


def ok(data=None, status_code=200):
    """Standard success envelope."""
    return jsonify({'status': 'ok', 'data': data}), status_code


def json_body() -> dict:
    """Parsed JSON object body, or InvalidRequestError."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise InvalidRequestError('A JSON object body is required')
    return payload


def query_limit(default: int = 50, maximum: int = 200) -> int:
    """``?limit=`` clamped to [1, maximum]."""
    raw = request.args.get('limit')
    if raw is None or raw == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InvalidRequestError('limit must be an integer') from None
    return max(1, min(value, maximum))
