"""Rewrite OpenAPI schema conventions into the form the validator expects.

After normalization a schema never carries a ``nullable`` flag: nullability
is expressed as ``"null"`` in the type list. Keys that only matter for
documentation are dropped.
"""

import copy
from typing import Any

from api_contract_checker.parser.resolver import component_schemas

PRESENTATION_KEYS = frozenset(
    {"example", "examples", "deprecated", "xml", "externalDocs", "discriminator"}
)
COMBINATOR_KEYS = ("allOf", "anyOf", "oneOf")
METHODS = ("get", "post", "put", "patch", "delete", "options", "head")


def normalize_schema(node: Any) -> Any:
    """Return a normalized copy of a single schema node and its children."""
    if not isinstance(node, dict):
        return node

    result: dict[str, Any] = {}
    for key, value in node.items():
        if key in PRESENTATION_KEYS or key.startswith("x-"):
            continue
        if key == "properties" and isinstance(value, dict):
            result[key] = {name: normalize_schema(sub) for name, sub in value.items()}
        elif key in ("items", "not", "additionalProperties") and isinstance(value, dict):
            result[key] = normalize_schema(value)
        elif key in COMBINATOR_KEYS and isinstance(value, list):
            result[key] = [normalize_schema(sub) for sub in value]
        else:
            result[key] = value

    nullable = result.pop("nullable", False) is True or node.get("x-nullable") is True
    if nullable:
        _make_nullable(result)
    return result


def _make_nullable(schema: dict) -> None:
    original = schema.get("type")
    if original is None:
        return
    if isinstance(original, list):
        if "null" not in original:
            schema["type"] = [*original, "null"]
    elif original != "null":
        schema["type"] = [original, "null"]

    enum = schema.get("enum")
    if isinstance(enum, list) and None not in enum:
        schema["enum"] = [*enum, None]


def normalize_document(doc: dict) -> dict:
    """Normalize every schema position of an (already resolved) document."""
    doc = copy.deepcopy(doc)

    for path_item in (doc.get("paths") or {}).values():
        if not isinstance(path_item, dict):
            continue
        _normalize_parameters(path_item.get("parameters"))
        for method in METHODS:
            operation = path_item.get(method)
            if isinstance(operation, dict):
                _normalize_operation(operation)

    schemas = component_schemas(doc)
    for name in list(schemas):
        schemas[name] = normalize_schema(schemas[name])

    return doc


def _normalize_operation(operation: dict) -> None:
    _normalize_parameters(operation.get("parameters"))

    body = operation.get("requestBody")
    if isinstance(body, dict):
        _normalize_content(body.get("content"))

    responses = operation.get("responses")
    if isinstance(responses, dict):
        for response in responses.values():
            if not isinstance(response, dict):
                continue
            _normalize_content(response.get("content"))
            headers = response.get("headers")
            if isinstance(headers, dict):
                for header in headers.values():
                    if isinstance(header, dict) and "schema" in header:
                        header["schema"] = normalize_schema(header["schema"])


def _normalize_parameters(parameters: Any) -> None:
    if not isinstance(parameters, list):
        return
    for param in parameters:
        if isinstance(param, dict) and "schema" in param:
            param["schema"] = normalize_schema(param["schema"])


def _normalize_content(content: Any) -> None:
    if not isinstance(content, dict):
        return
    for media in content.values():
        if isinstance(media, dict) and "schema" in media:
            media["schema"] = normalize_schema(media["schema"])
