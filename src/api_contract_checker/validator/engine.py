"""Request/response conformance checks against one resolved specification."""

import json
import logging
from pathlib import Path
from typing import Any

from api_contract_checker.config import Settings
from api_contract_checker.parser.base import (
    Header,
    MediaType,
    Operation,
    Parameter,
    PathItem,
    ResponseDef,
    Schema,
    Spec,
)
from api_contract_checker.parser.swagger import load_spec, read_spec_source
from api_contract_checker.traffic import TrafficRecord, TrafficValidation
from api_contract_checker.validator.errors import ErrorCode, ValidationError, ValidationResult
from api_contract_checker.validator.params import (
    parse_cookie_header,
    parse_query_string,
    validate_parameters,
)
from api_contract_checker.validator.paths import PathMatch, PathMatcher
from api_contract_checker.validator.schema import SchemaValidator

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"
REQUEST_BODY = "requestBody"
RESPONSE_BODY = "responseBody"


def extract_media_type(content_type: str | None) -> str | None:
    """``application/json; charset=utf-8`` -> ``application/json``."""
    if not content_type:
        return None
    return content_type.split(";", 1)[0].strip().lower() or None


def is_json_media_type(media_type: str) -> bool:
    subtype = media_type.split("/", 1)[-1]
    return media_type == "*/*" or subtype == "json" or subtype.endswith("+json")


def select_json_schema(content: dict[str, MediaType], content_type: str | None) -> Schema | None:
    """Pick the schema to validate a body with, or None for non-JSON bodies."""
    media_type = extract_media_type(content_type)
    if media_type is not None and media_type in content:
        return content[media_type].schema_ if is_json_media_type(media_type) else None
    if JSON_MEDIA_TYPE in content:
        return content[JSON_MEDIA_TYPE].schema_
    for name, media in content.items():
        if is_json_media_type(name):
            return media.schema_
    return None


def merged_parameters(path_item: PathItem, operation: Operation) -> list[Parameter]:
    """Path-level parameters overridden by operation parameters of the same name/location."""
    merged = {(p.name, p.location): p for p in path_item.parameters}
    for param in operation.parameters:
        merged[(param.name, param.location)] = param
    return list(merged.values())


def resolve_response(operation: Operation, status: int) -> ResponseDef | None:
    """Exact status code, then its class wildcard (``2XX``), then ``default``."""
    code = str(status)
    for key in (code, f"{code[0]}XX", "default"):
        if key in operation.responses:
            return operation.responses[key]
    return None


def _header(headers: dict[str, str], name: str) -> str | None:
    name = name.lower()
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def _body_absent(body: Any) -> bool:
    return body is None or body == "" or body == b""


class OpenApiValidator:
    """Validates captured traffic against a resolved specification.

    The spec is never mutated, so one instance can serve any number of
    concurrent validations.
    """

    def __init__(self, spec: Spec, settings: Settings | None = None):
        self.spec = spec
        self.settings = settings or Settings()
        self.matcher = PathMatcher(spec, self.settings.match_mode, self.settings.tie_break)
        self.schemas = SchemaValidator(spec.components.schemas)

    @classmethod
    def from_text(cls, text: str, settings: Settings | None = None) -> "OpenApiValidator":
        settings = settings or Settings()
        return cls(load_spec(text, max_ref_depth=settings.max_ref_depth), settings)

    @classmethod
    def from_source(cls, source: str | Path, settings: Settings | None = None) -> "OpenApiValidator":
        return cls.from_text(read_spec_source(source), settings)

    def path_patterns(self) -> list[str]:
        return self.matcher.patterns()

    def find_operation(self, url: str, method: str) -> PathMatch | None:
        return self.matcher.match(url, method)

    def has_operation(self, url: str, method: str) -> bool:
        match = self.matcher.match(url, method)
        return match is not None and match.operation is not None

    def validate_traffic(self, record: TrafficRecord) -> TrafficValidation:
        return TrafficValidation(
            request=self.validate_request(record),
            response=self.validate_response(record),
        )

    def validate_request(self, record: TrafficRecord) -> ValidationResult:
        match, failure = self._match(record)
        if failure is not None:
            return failure

        operation = match.operation
        params = merged_parameters(match.path_item, operation)
        headers = {k.lower(): v for k, v in record.headers.items()}
        query = {**parse_query_string(record.path), **record.query_params}

        errors: list[ValidationError] = []
        errors += validate_parameters(params, "path", match.path_params, self.schemas)
        errors += validate_parameters(params, "query", query, self.schemas)
        errors += validate_parameters(params, "header", headers, self.schemas)
        errors += validate_parameters(
            params, "cookie", parse_cookie_header(headers.get("cookie")), self.schemas
        )
        errors += self._validate_request_body(operation, record)
        return ValidationResult.from_errors(errors)

    def validate_response(self, record: TrafficRecord) -> ValidationResult:
        match, failure = self._match(record)
        if failure is not None:
            return failure

        response_def = None
        if record.status is not None:
            response_def = resolve_response(match.operation, record.status)
        if response_def is None:
            return ValidationResult.from_errors([
                ValidationError(
                    path="status",
                    message=(
                        f"Status code {record.status} is not documented for "
                        f"{match.method.upper()} {match.pattern}"
                    ),
                    error_code=ErrorCode.UNEXPECTED_STATUS_CODE,
                    actual_value=record.status,
                    expected=", ".join(match.operation.responses) or None,
                )
            ])

        errors = self._validate_response_headers(response_def, record.response_headers)

        if record.status == 204:
            if not _body_absent(record.response_body):
                errors.append(
                    ValidationError(
                        path=RESPONSE_BODY,
                        message="204 No Content response must not have a body",
                        error_code=ErrorCode.UNEXPECTED_BODY,
                        location="body",
                        actual_value=record.response_body,
                    )
                )
            return ValidationResult.from_errors(errors)

        schema = select_json_schema(
            response_def.content, _header(record.response_headers, "content-type")
        )
        if schema is not None:
            errors += self._validate_body(record.response_body, schema, RESPONSE_BODY)
        return ValidationResult.from_errors(errors)

    def _match(self, record: TrafficRecord) -> tuple[PathMatch | None, ValidationResult | None]:
        match = self.matcher.match(record.path, record.method)
        if match is None:
            return None, ValidationResult.from_errors([
                ValidationError(
                    path=record.path,
                    message=f"Path '{record.path}' is not defined in the specification",
                    error_code=ErrorCode.PATH_NOT_FOUND,
                )
            ])
        if match.operation is None:
            return None, ValidationResult.from_errors([
                ValidationError(
                    path=record.path,
                    message=f"Method {record.method.upper()} is not defined for path '{match.pattern}'",
                    error_code=ErrorCode.METHOD_NOT_ALLOWED,
                    actual_value=record.method.upper(),
                    expected=", ".join(m.upper() for m in match.path_item.methods()),
                )
            ])
        return match, None

    def _validate_request_body(self, operation: Operation, record: TrafficRecord) -> list[ValidationError]:
        body_def = operation.request_body
        if body_def is None:
            return []
        if _body_absent(record.body):
            if not body_def.required:
                return []
            return [
                ValidationError(
                    path=REQUEST_BODY,
                    message="Request body is required",
                    error_code=ErrorCode.REQUIRED,
                    location="body",
                )
            ]
        schema = select_json_schema(body_def.content, _header(record.headers, "content-type"))
        if schema is None:
            return []
        return self._validate_body(record.body, schema, REQUEST_BODY)

    def _validate_body(self, body: Any, schema: Schema, root: str) -> list[ValidationError]:
        if isinstance(body, (bytes, bytearray)):
            body = body.decode("utf-8", errors="replace")
        if isinstance(body, str) and body.lstrip()[:1] in ("{", "["):
            try:
                body = json.loads(body)
            except ValueError as e:
                logger.debug("Malformed JSON in %s: %s", root, e)
                return [
                    ValidationError(
                        path=root,
                        message=f"Body is not valid JSON: {e}",
                        error_code=ErrorCode.VALIDATION_ERROR,
                        location="body",
                        actual_type="string",
                        expected="json",
                    )
                ]
        return [
            error.model_copy(update={"location": "body"})
            for error in self.schemas.validate(body, schema, root)
        ]

    def _validate_response_headers(self, response_def: ResponseDef, headers: dict[str, str]) -> list[ValidationError]:
        params = [
            _header_parameter(name, header)
            for name, header in response_def.headers.items()
            if name.lower() != "content-type"
        ]
        return validate_parameters(params, "header", headers, self.schemas, prefix="responseHeader")


def _header_parameter(name: str, header: Header) -> Parameter:
    return Parameter(name=name, location="header", required=header.required, schema_=header.schema_)
