"""Structural validation of JSON values against schema nodes.

Schema nodes are evaluated by a Draft 2020-12 ``jsonschema`` validator with
three keywords adjusted for API traffic: ``pattern`` must match the whole
string, a required property holding ``null`` counts as missing, and a
``$ref`` that cannot be followed becomes an error on its node. The raw
``jsonschema`` errors are then mapped onto :class:`ErrorCode` values with
dotted/bracketed locators.

A node whose type does not match is reported once; errors below it are
dropped.
"""

import logging
import re
from typing import Any, Iterable, Iterator, Mapping

from jsonschema import Draft202012Validator, validators
from jsonschema.exceptions import ValidationError as SchemaViolation
from referencing.exceptions import Unresolvable

from api_contract_checker.parser.base import Schema
from api_contract_checker.validator.errors import ErrorCode, ValidationError, json_type
from api_contract_checker.validator.formats import FORMAT_CHECKER

logger = logging.getLogger(__name__)

BOUND_SYMBOLS = {
    "minimum": ">=",
    "maximum": "<=",
    "exclusiveMinimum": ">",
    "exclusiveMaximum": "<",
}
RANGE_KEYWORDS = frozenset({
    "multipleOf",
    "minLength",
    "maxLength",
    "minItems",
    "maxItems",
    "uniqueItems",
    "minProperties",
    "maxProperties",
})

_follow_ref = Draft202012Validator.VALIDATORS["$ref"]


def child_path(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


def item_path(path: str, index: int) -> str:
    return f"{path}[{index}]"


def _pattern(validator, pattern, instance, schema):
    if not validator.is_type(instance, "string"):
        return
    try:
        matched = re.fullmatch(pattern, instance)
    except re.error as e:
        yield SchemaViolation(f"Invalid pattern {pattern!r}: {e}", cause=e)
        return
    if matched is None:
        yield SchemaViolation(f"String does not match pattern {pattern}")


def _required(validator, required, instance, schema):
    if not validator.is_type(instance, "object"):
        return
    properties = schema.get("properties", {})
    for name in required:
        if name not in instance:
            yield SchemaViolation(f"Required property '{name}' is missing", path=[name])
        elif instance[name] is None and not _admits_null(properties.get(name)):
            yield SchemaViolation(f"Required property '{name}' is null", path=[name])


def _ref(validator, ref, instance, schema):
    try:
        errors = list(_follow_ref(validator, ref, instance, schema))
    except Unresolvable as e:
        yield SchemaViolation(f"Cannot resolve reference {ref}", cause=e)
        return
    except RecursionError as e:
        yield SchemaViolation(f"Reference loop through {ref}", cause=e)
        return
    yield from errors


OpenApiSchemaValidator = validators.extend(
    Draft202012Validator,
    validators={"$ref": _ref, "pattern": _pattern, "required": _required},
)


def to_json_schema(schema: Schema) -> dict[str, Any]:
    """Plain Draft 2020-12 form of a schema node."""
    data = schema.model_dump(by_alias=True, exclude_none=True, exclude_defaults=True)
    return _numeric_bounds(data)


class SchemaValidator:
    """Validates values against resolved schema nodes.

    ``components`` backs the references the resolver left in place (cyclic
    or too deep). They are embedded next to every compiled schema, so a
    ``#/components/schemas/Name`` pointer resolves and is only followed while
    the value keeps descending.
    """

    def __init__(self, components: Mapping[str, Schema] | None = None):
        self.components = {name: to_json_schema(s) for name, s in (components or {}).items()}
        # keyed by id(); the stored Schema keeps that id in use
        self._compiled: dict[int, tuple[Schema, Any]] = {}

    def validate(self, value: Any, schema: Schema, path: str = "") -> list[ValidationError]:
        if value is None and schema.types and "null" not in schema.types:
            return [_error(path, "Value is required", ErrorCode.REQUIRED)]

        try:
            raw = list(self._compile(schema).iter_errors(value))
        except Exception as e:
            logger.debug("Schema evaluation failed at %s: %s", path or "<root>", e)
            return [
                _error(path, f"Error while evaluating schema: {e}", ErrorCode.VALIDATION_ERROR)
            ]

        found = [(tuple(error.absolute_path), _convert(error, path)) for error in _closest(raw)]
        return _without_cascades(found)

    def _compile(self, schema: Schema):
        cached = self._compiled.get(id(schema))
        if cached is None:
            document = to_json_schema(schema)
            document["components"] = {"schemas": self.components}
            cached = (schema, OpenApiSchemaValidator(document, format_checker=FORMAT_CHECKER))
            self._compiled[id(schema)] = cached
        return cached[1]


def validate_value(
    value: Any,
    schema: Schema,
    path: str = "",
    components: Mapping[str, Schema] | None = None,
) -> list[ValidationError]:
    """Validate ``value`` against ``schema``; returns every error found."""
    return SchemaValidator(components).validate(value, schema, path)


def _numeric_bounds(node: dict[str, Any]) -> dict[str, Any]:
    # boolean exclusiveMinimum/Maximum (OpenAPI 3.0) become the numeric form
    for flag, bound in (("exclusiveMinimum", "minimum"), ("exclusiveMaximum", "maximum")):
        exclusive = node.get(flag)
        if isinstance(exclusive, bool):
            del node[flag]
            if exclusive and bound in node:
                node[flag] = node.pop(bound)

    for sub in node.get("properties", {}).values():
        _numeric_bounds(sub)
    if "items" in node:
        _numeric_bounds(node["items"])
    for keyword in ("allOf", "anyOf", "oneOf"):
        for sub in node.get(keyword, []):
            _numeric_bounds(sub)
    return node


def _admits_null(schema: Any) -> bool:
    if not isinstance(schema, dict):
        return False
    types = schema.get("type")
    if types is None:
        return True
    if isinstance(types, str):
        types = [types]
    return "null" in types


def _closest(errors: Iterable[SchemaViolation]) -> Iterator[SchemaViolation]:
    """Swap failed anyOf/oneOf errors for the errors of the branch that came closest."""
    for error in errors:
        if error.validator in ("anyOf", "oneOf") and error.context:
            branches: dict[Any, list[SchemaViolation]] = {}
            for sub in error.context:
                branches.setdefault(sub.relative_schema_path[0], []).append(sub)
            yield from _closest(min(branches.values(), key=len))
        else:
            yield error


def _convert(error: SchemaViolation, root: str) -> ValidationError:
    path = _locator(root, error.absolute_path)
    keyword = error.validator
    if keyword == "required":
        return _error(path, error.message, ErrorCode.REQUIRED)
    if error.cause is not None and keyword in ("pattern", "$ref"):
        return _error(path, error.message, ErrorCode.VALIDATION_ERROR)

    code, expected = _classify(keyword, error.validator_value)
    return _error(
        path,
        error.message,
        code,
        value=error.instance,
        actual_type=json_type(error.instance),
        expected=expected,
    )


def _classify(keyword: str, constraint: Any) -> tuple[ErrorCode, str | None]:
    if keyword == "type":
        types = [constraint] if isinstance(constraint, str) else list(constraint)
        return ErrorCode.TYPE_MISMATCH, " | ".join(types)
    if keyword == "enum":
        return ErrorCode.ENUM_VIOLATION, " | ".join(str(member) for member in constraint)
    if keyword in ("pattern", "format"):
        return ErrorCode.FORMAT_VIOLATION, constraint
    if keyword in BOUND_SYMBOLS:
        return ErrorCode.RANGE_VIOLATION, f"{BOUND_SYMBOLS[keyword]} {constraint}"
    if keyword == "uniqueItems":
        return ErrorCode.RANGE_VIOLATION, keyword
    if keyword in RANGE_KEYWORDS:
        return ErrorCode.RANGE_VIOLATION, f"{keyword} {constraint}"
    return ErrorCode.VALIDATION_ERROR, None


def _locator(root: str, parts: Iterable[str | int]) -> str:
    path = root
    for part in parts:
        path = item_path(path, part) if isinstance(part, int) else child_path(path, part)
    return path


def _without_cascades(found: list[tuple[tuple, ValidationError]]) -> list[ValidationError]:
    """A REQUIRED or TYPE_MISMATCH error hides every other error at or below its path."""
    chosen: dict[tuple, ValidationError] = {}
    for code in (ErrorCode.REQUIRED, ErrorCode.TYPE_MISMATCH):
        for parts, error in found:
            if error.error_code is code and not _within(parts, chosen):
                chosen[parts] = error
    return [
        error for parts, error in found
        if chosen.get(parts) is error or not _within(parts, chosen)
    ]


def _within(parts: tuple, roots: Iterable[tuple]) -> bool:
    return any(parts[:len(root)] == root for root in roots)


def _error(
    path: str,
    message: str,
    code: ErrorCode,
    value: Any = None,
    actual_type: str | None = None,
    expected: str | None = None,
) -> ValidationError:
    return ValidationError(
        path=path,
        message=message,
        error_code=code,
        actual_value=value,
        actual_type=actual_type,
        expected=expected,
    )
