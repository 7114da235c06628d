"""Shared JSON plumbing for the API blueprints: payload forms and error handlers."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, ClassVar, Iterable

from flask import Flask, jsonify, request
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel
from werkzeug.exceptions import HTTPException

from ..auth import AuthenticationRequired
from ..logging_config import get_logger
from ..services.dates import parse_date_only, parse_timestamp
from ..services.results import NotFoundError

logger = get_logger(__name__)


class PayloadForm(BaseModel):
    """Base for request payloads sent by the SPA in camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    # Keys that may be omitted but never sent as an explicit null.
    NON_NULLABLE: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def from_request(cls):
        """Validate the current request's JSON body."""

        payload = request.get_json(silent=True)
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValueError("Request body must be a JSON object.")
        form = cls.model_validate(payload)
        for name in cls.NON_NULLABLE:
            if name in form.model_fields_set and getattr(form, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null.")
        return form

    def to_fields(self, *, exclude: Iterable[str] = ()) -> dict[str, Any]:
        """Return only the fields the client actually sent, keyed by attribute name."""

        return self.model_dump(exclude_unset=True, exclude=set(exclude))


def coerce_date_only(value: Any) -> Any:
    """``field_validator`` hook enforcing the strict ``YYYY-MM-DD`` wire format."""

    if isinstance(value, str):
        return parse_date_only(value)
    if isinstance(value, datetime):
        raise ValueError("Expected a date in 'YYYY-MM-DD' format.")
    return value


def coerce_timestamp(value: Any) -> Any:
    if isinstance(value, str):
        return parse_timestamp(value)
    return value


def query_date(name: str) -> date | None:
    """Parse an optional date-only query parameter."""

    raw = request.args.get(name, "").strip()
    if not raw:
        return None
    return parse_date_only(raw)


def query_flag(name: str) -> bool:
    return request.args.get(name, "").strip().lower() in {"1", "true", "yes", "on"}


def _invalidation_keys(extra: Iterable[str] = ()) -> list[str]:
    """Cache aggregates the client must reload after a failed command."""

    keys: list[str] = []
    view_args = request.view_args or {}
    if "goal_id" in view_args:
        keys += ["goals", f"goal:{view_args['goal_id']}"]
    if "task_id" in view_args:
        keys += ["tasks", f"task:{view_args['task_id']}"]
    for key in extra:
        if key not in keys:
            keys.append(key)
    return keys


def error_response(
    error: str,
    message: str,
    status: int,
    *,
    fields: dict[str, list[str]] | None = None,
    invalidate: Iterable[str] = (),
):
    body: dict[str, Any] = {
        "error": error,
        "message": message,
        "invalidate": _invalidation_keys(invalidate),
    }
    if fields:
        body["fields"] = fields
    return jsonify(body), status


def register_error_handlers(app: Flask) -> None:
    """Translate service exceptions into structured JSON errors."""

    @app.errorhandler(ValidationError)
    def _payload_invalid(exc: ValidationError):
        structured: dict[str, list[str]] = {}
        for error in exc.errors(include_url=False):
            loc = error.get("loc", ())
            key = ".".join(str(part) for part in loc) if loc else "__root__"
            structured.setdefault(key, []).append(error.get("msg", "Invalid value"))
        return error_response("validation_error", "Request payload is invalid.", 400, fields=structured)

    @app.errorhandler(ValueError)
    def _invalid(exc: ValueError):
        return error_response("validation_error", str(exc), 400)

    @app.errorhandler(NotFoundError)
    def _not_found(exc: NotFoundError):
        return error_response(
            "not_found", str(exc), 404, invalidate=[f"{exc.kind}s", exc.cache_key]
        )

    @app.errorhandler(AuthenticationRequired)
    def _unauthenticated(exc: AuthenticationRequired):
        return error_response("unauthorized", str(exc), 401)

    @app.errorhandler(Exception)
    def _unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return error_response(
                (exc.name or "http_error").lower().replace(" ", "_"),
                exc.description or exc.name,
                exc.code or 500,
            )
        logger.exception("Unhandled API error", extra={"path": request.path})
        return error_response("internal_error", "Something went wrong. Please retry.", 500)


__all__ = [
    "PayloadForm",
    "coerce_date_only",
    "coerce_timestamp",
    "error_response",
    "query_date",
    "query_flag",
    "register_error_handlers",
]
