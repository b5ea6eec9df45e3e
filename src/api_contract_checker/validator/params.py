"""Path, query, header and cookie parameter validation.

Wire values are strings; they are coerced to the declared type before the
schema check so that ``?limit=10`` satisfies ``type: integer``.
"""

import math
from typing import Any, Mapping
from urllib.parse import parse_qsl, unquote

from api_contract_checker.parser.base import Parameter, Schema
from api_contract_checker.validator.errors import ErrorCode, ValidationError
from api_contract_checker.validator.schema import SchemaValidator, child_path

# OpenAPI: header parameters with these names are ignored
IGNORED_HEADERS = frozenset({"accept", "content-type", "authorization"})

ParamValues = Mapping[str, str | list[str]]


def parse_query_string(url: str) -> dict[str, str | list[str]]:
    """Query parameters of a URL or path; repeated keys give lists."""
    url = url.split("#", 1)[0]
    query = url.split("?", 1)[1] if "?" in url else ""
    params: dict[str, str | list[str]] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        if key in params:
            existing = params[key]
            params[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            params[key] = value
    return params


def parse_cookie_header(header: str | None) -> dict[str, str]:
    cookies: dict[str, str] = {}
    if not header:
        return cookies
    for pair in header.split(";"):
        name, sep, value = pair.strip().partition("=")
        if name and sep:
            cookies[name] = unquote(value.strip().strip('"'))
    return cookies


def coerce_value(raw: Any, schema: Schema) -> Any:
    """Convert a wire-format value to the schema's declared type.

    Non-numeric text for a numeric schema is returned unchanged so the
    schema check reports the mismatch.
    """
    target = schema.primary_type
    if target == "array":
        items = raw if isinstance(raw, list) else str(raw).split(",")
        if schema.items is None:
            return list(items)
        return [coerce_value(item, schema.items) for item in items]

    if isinstance(raw, list):
        raw = raw[-1] if raw else ""
    if target in ("integer", "number"):
        return _parse_number(raw)
    if target == "boolean":
        return raw is True or raw == "true"
    return raw


def _parse_number(raw: Any) -> Any:
    if not isinstance(raw, str):
        return raw
    text = raw.strip()
    if not text or "_" in text:
        return raw
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return raw
    if not math.isfinite(number):
        return raw
    return number


def _is_absent(value: Any) -> bool:
    return value is None or value == "" or value == []


def validate_parameters(
    parameters: list[Parameter],
    location: str,
    values: ParamValues,
    validator: SchemaValidator | None = None,
    prefix: str | None = None,
) -> list[ValidationError]:
    """Check declared parameters of one location against received values.

    Undeclared values are not reported. Header names compare
    case-insensitively.
    """
    validator = validator or SchemaValidator()
    prefix = prefix or location
    if location == "header":
        values = {k.lower(): v for k, v in values.items()}

    errors: list[ValidationError] = []
    for param in parameters:
        if param.location != location:
            continue
        key = param.name.lower() if location == "header" else param.name
        if location == "header" and key in IGNORED_HEADERS:
            continue

        path = child_path(prefix, param.name)
        value = values.get(key)
        if _is_absent(value):
            if param.required:
                errors.append(
                    ValidationError(
                        path=path,
                        message=f"Required parameter '{param.name}' is missing",
                        error_code=ErrorCode.REQUIRED,
                        location=location,
                    )
                )
            continue

        if param.schema_ is None:
            continue
        coerced = coerce_value(value, param.schema_)
        for error in validator.validate(coerced, param.schema_, path):
            errors.append(error.model_copy(update={"location": location}))
    return errors
