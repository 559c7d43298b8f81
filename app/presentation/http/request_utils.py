"""Small request parsing helpers shared by the blueprints."""

from flask import current_app, request

from app.domain.errors import ValidationError


def json_body() -> dict:
    data = request.get_json(force=True, silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object", code="invalid_payload")
    return data


def required_int(data: dict, key: str) -> int:
    try:
        return int(data[key])
    except (KeyError, TypeError, ValueError):
        raise ValidationError(f"{key} is required", code=f"missing_{key}")


def page_args(default_limit: int = 10, max_limit: int = 100) -> tuple[int, int, int]:
    """(page, limit, offset) from ``?page=&limit=``."""
    try:
        page = max(1, int(request.args.get("page", "1")))
        limit = min(max_limit, max(1, int(request.args.get("limit", str(default_limit)))))
    except ValueError:
        raise ValidationError("page and limit must be numbers", code="invalid_pagination")
    return page, limit, (page - 1) * limit


def now():
    return current_app.container.clock()
