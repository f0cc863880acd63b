"""Request validator — declarative checks on a JSON request body."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from summarizer_gateway.domain.exceptions import InvalidField, MalformedBody, MissingField

_URL_ADAPTER: TypeAdapter[AnyHttpUrl] = TypeAdapter(AnyHttpUrl)

_ANGLE_BRACKETS_RE = re.compile(r"[<>]")
_JS_SCHEME_RE = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER_RE = re.compile(r"on\w+=", re.IGNORECASE)


class FieldShape(str, Enum):
    """Expected shape of a body field."""

    STRING = "string"
    URL = "url"


@dataclass(frozen=True, slots=True)
class FieldSpec:
    name: str
    shape: FieldShape = FieldShape.STRING
    required: bool = True
    sanitize: bool = False


@dataclass(frozen=True, slots=True)
class ValidationSchema:
    fields: tuple[FieldSpec, ...]
    max_body_bytes: int = 1024 * 1024


def sanitize_string(value: str) -> str:
    """Trim and strip markup that could be echoed back into an HTML context."""
    value = _ANGLE_BRACKETS_RE.sub("", value)
    value = _JS_SCHEME_RE.sub("", value)
    value = _EVENT_HANDLER_RE.sub("", value)
    return value.strip()


def parse_json_object(raw: bytes, max_bytes: int) -> dict[str, Any]:
    if not raw or not raw.strip():
        raise MalformedBody("Request body is required.")
    if len(raw) > max_bytes:
        raise MalformedBody(f"Request body is too large (max {max_bytes} bytes).")
    try:
        body = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as exc:
        raise MalformedBody("Invalid JSON in request body.") from exc
    if not isinstance(body, dict):
        raise MalformedBody("Request body must be a JSON object.")
    return body


def validate_body(schema: ValidationSchema, raw: bytes) -> dict[str, Any]:
    """Parse *raw* and check it against *schema*.

    Returns a new dict in which every field marked ``sanitize`` has been
    normalised; all other fields pass through untouched.
    """
    body = parse_json_object(raw, schema.max_body_bytes)
    result = dict(body)

    for spec in schema.fields:
        value = body.get(spec.name)

        if value is None or (isinstance(value, str) and not value.strip()):
            if spec.required:
                raise MissingField(spec.name)
            continue

        if not isinstance(value, str):
            raise InvalidField(spec.name, FieldShape.STRING.value)

        if spec.shape is FieldShape.URL and not _is_absolute_url(value.strip()):
            raise InvalidField(spec.name, "absolute http(s) URL")

        if spec.sanitize:
            result[spec.name] = sanitize_string(value)

    return result


def _is_absolute_url(value: str) -> bool:
    try:
        _URL_ADAPTER.validate_python(value)
    except ValidationError:
        return False
    return True
