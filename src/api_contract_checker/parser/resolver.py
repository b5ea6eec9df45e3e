"""Inline internal component-schema references.

Only pointers of the form ``#/components/schemas/<name>`` are followed.
Every other ``$ref`` is copied through untouched.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

COMPONENT_SCHEMA_PREFIX = "#/components/schemas/"
DEFAULT_MAX_DEPTH = 20


def component_name(ref: str) -> str | None:
    """Return the schema name a component reference points at, or None."""
    if not ref.startswith(COMPONENT_SCHEMA_PREFIX):
        return None
    name = ref[len(COMPONENT_SCHEMA_PREFIX):]
    if not name or "/" in name:
        return None
    # JSON pointer escapes
    return name.replace("~1", "/").replace("~0", "~")


def resolve_refs(doc: dict, max_depth: int = DEFAULT_MAX_DEPTH) -> dict:
    """Return a copy of ``doc`` with component-schema references inlined.

    Each reference is replaced by a fresh copy of its target, resolved in
    turn. A reference back into a schema that is already being expanded
    on the current chain, or one more than ``max_depth`` expansions deep,
    is left as the original ``$ref`` node.
    """
    return _resolve(doc, component_schemas(doc), (), max_depth)


def component_schemas(doc: dict) -> dict:
    """``components.schemas`` of ``doc``; empty when absent or not a mapping."""
    components = doc.get("components")
    schemas = components.get("schemas") if isinstance(components, dict) else None
    return schemas if isinstance(schemas, dict) else {}


def _resolve(node: Any, schemas: dict, chain: tuple[str, ...], max_depth: int) -> Any:
    if isinstance(node, list):
        return [_resolve(item, schemas, chain, max_depth) for item in node]
    if not isinstance(node, dict):
        return node

    ref = node.get("$ref")
    if isinstance(ref, str):
        name = component_name(ref)
        if name is None or not isinstance(schemas.get(name), dict):
            return dict(node)
        if name in chain:
            logger.debug("Leaving cyclic reference %s unresolved", ref)
            return dict(node)
        if len(chain) >= max_depth:
            logger.warning("Reference depth limit %d reached at %s", max_depth, ref)
            return dict(node)

        resolved = _resolve(schemas[name], schemas, chain + (name,), max_depth)
        # sibling keywords (description, nullable, ...) win over the target
        for key, value in node.items():
            if key != "$ref":
                resolved[key] = _resolve(value, schemas, chain, max_depth)
        return resolved

    return {key: _resolve(value, schemas, chain, max_depth) for key, value in node.items()}
