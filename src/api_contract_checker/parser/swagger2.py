"""Swagger 2.0 -> OpenAPI 3.x shape conversion.

Only the parts the validator reads are converted: schema definitions,
parameters, request bodies, response schemas and headers, and basePath.
"""

import copy
from typing import Any

from .resolver import COMPONENT_SCHEMA_PREFIX

DEFINITIONS_PREFIX = "#/definitions/"
JSON_MEDIA_TYPE = "application/json"
METHODS = ("get", "post", "put", "patch", "delete", "options", "head")

# keywords that Swagger 2.0 puts directly on parameters and headers
_INLINE_SCHEMA_KEYS = (
    "type", "format", "items", "enum", "pattern", "default",
    "minimum", "maximum", "exclusiveMinimum", "exclusiveMaximum", "multipleOf",
    "minLength", "maxLength", "minItems", "maxItems", "uniqueItems", "x-nullable",
)


def upgrade_swagger2(doc: dict) -> dict:
    """Return a copy of a Swagger 2.0 document in OpenAPI 3.x layout."""
    doc = _rewrite_refs(copy.deepcopy(doc))

    upgraded: dict[str, Any] = {
        "openapi": "3.0.0",
        "swagger": str(doc.get("swagger")),
        "info": doc.get("info"),
        "paths": {},
        "components": {"schemas": doc.get("definitions") or {}},
    }
    base_path = doc.get("basePath")
    if isinstance(base_path, str) and base_path.strip("/"):
        upgraded["servers"] = [{"url": base_path}]

    paths = doc.get("paths")
    if not isinstance(paths, dict):
        upgraded["paths"] = paths
        return upgraded

    for pattern, path_item in paths.items():
        if not isinstance(path_item, dict):
            upgraded["paths"][pattern] = path_item
            continue
        shared_params, shared_body = _convert_parameters(path_item.get("parameters"))
        new_item: dict[str, Any] = {"parameters": shared_params}
        for method in METHODS:
            operation = path_item.get(method)
            if isinstance(operation, dict):
                new_item[method] = _convert_operation(operation, shared_body)
        upgraded["paths"][pattern] = new_item

    return upgraded


def _rewrite_refs(node: Any) -> Any:
    if isinstance(node, list):
        return [_rewrite_refs(item) for item in node]
    if not isinstance(node, dict):
        return node
    result = {}
    for key, value in node.items():
        if key == "$ref" and isinstance(value, str) and value.startswith(DEFINITIONS_PREFIX):
            result[key] = COMPONENT_SCHEMA_PREFIX + value[len(DEFINITIONS_PREFIX):]
        else:
            result[key] = _rewrite_refs(value)
    return result


def _convert_operation(operation: dict, shared_body: dict | None) -> dict:
    parameters, body = _convert_parameters(operation.get("parameters"))
    converted = {
        key: value
        for key, value in operation.items()
        if key not in ("parameters", "responses", "consumes", "produces")
    }
    converted["parameters"] = parameters
    if body or shared_body:
        converted["requestBody"] = body or shared_body

    responses = operation.get("responses")
    if isinstance(responses, dict):
        converted["responses"] = {
            code: _convert_response(resp) for code, resp in responses.items()
        }
    return converted


def _convert_parameters(parameters: Any) -> tuple[list, dict | None]:
    """Split Swagger parameters into 3.x parameters and a request body."""
    if not isinstance(parameters, list):
        return [], None

    result = []
    body = None
    for param in parameters:
        if not isinstance(param, dict):
            continue
        location = param.get("in")
        if location == "body":
            body = {
                "required": bool(param.get("required", False)),
                "content": {JSON_MEDIA_TYPE: {"schema": param.get("schema") or {}}},
            }
        elif location == "formData":
            continue
        elif "$ref" in param:
            result.append(param)
        else:
            result.append(_with_schema(param))
    return result, body


def _with_schema(obj: dict) -> dict:
    """Move inline type keywords of a parameter/header under ``schema``."""
    if "schema" in obj:
        return obj
    converted = {k: v for k, v in obj.items() if k not in _INLINE_SCHEMA_KEYS}
    schema = {k: obj[k] for k in _INLINE_SCHEMA_KEYS if k in obj}
    if schema:
        converted["schema"] = schema
    return converted


def _convert_response(response: Any) -> Any:
    if not isinstance(response, dict):
        return response
    converted = {k: v for k, v in response.items() if k not in ("schema", "headers", "examples")}
    if "schema" in response:
        converted["content"] = {JSON_MEDIA_TYPE: {"schema": response["schema"]}}
    headers = response.get("headers")
    if isinstance(headers, dict):
        converted["headers"] = {
            name: _with_schema(header) if isinstance(header, dict) else header
            for name, header in headers.items()
        }
    return converted
