"""OpenAPI / Swagger document loader.

Parses OpenAPI 3.x and Swagger 2.0 text into a resolved ``Spec``:
parse -> structural check -> (2.0 upgrade) -> resolve refs -> normalize
-> typed models.
"""

import json
import logging
from pathlib import Path

import pydantic
import requests
import yaml

from .base import Spec
from .detect import detect_syntax, detect_version
from .normalizer import normalize_document
from .resolver import DEFAULT_MAX_DEPTH, resolve_refs
from .swagger2 import upgrade_swagger2

logger = logging.getLogger(__name__)

FETCH_TIMEOUT = 10


class SpecLoadError(Exception):
    """The specification text could not be turned into a usable document."""


def parse_spec_text(text: str) -> dict:
    """Parse JSON or YAML text and check the top-level structure."""
    syntax = detect_syntax(text)
    try:
        if syntax == "json":
            doc = json.loads(text)
        else:
            doc = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SpecLoadError(f"Failed to parse {syntax.upper()}: {e}") from e

    check_structure(doc)
    return doc


def check_structure(doc: object) -> None:
    """Reject documents that cannot be an OpenAPI/Swagger specification."""
    if not doc:
        raise SpecLoadError("Specification is empty")
    if not isinstance(doc, dict):
        raise SpecLoadError("Specification must be a mapping at the top level")
    if detect_version(doc) is None:
        raise SpecLoadError("No 'openapi' or 'swagger' version field")
    if not isinstance(doc.get("info"), dict):
        raise SpecLoadError("Missing 'info' field")
    paths = doc.get("paths")
    if not isinstance(paths, dict):
        raise SpecLoadError("Missing 'paths' field")
    if not paths:
        raise SpecLoadError("No paths are defined")
    _check_mapping(doc, "components")
    if isinstance(doc.get("components"), dict):
        _check_mapping(doc["components"], "schemas", "components.schemas")
    _check_mapping(doc, "definitions")


def _check_mapping(parent: dict, key: str, label: str | None = None) -> None:
    value = parent.get(key)
    if value is not None and not isinstance(value, dict):
        raise SpecLoadError(f"'{label or key}' must be a mapping")


def build_spec(doc: dict, max_ref_depth: int = DEFAULT_MAX_DEPTH) -> Spec:
    """Turn a structurally valid document into a resolved ``Spec``."""
    if detect_version(doc) == "swagger2":
        doc = upgrade_swagger2(doc)
    resolved = normalize_document(resolve_refs(doc, max_depth=max_ref_depth))
    _drop_parameter_refs(resolved)
    try:
        return Spec.model_validate(resolved)
    except pydantic.ValidationError as e:
        raise SpecLoadError(f"Invalid specification: {e}") from e


def _drop_parameter_refs(doc: dict) -> None:
    # only schema references are inlined; a parameter left as a bare $ref
    # has no name or location to check against
    for pattern, path_item in doc["paths"].items():
        if not isinstance(path_item, dict):
            continue
        holders = [path_item] + [v for v in path_item.values() if isinstance(v, dict)]
        for holder in holders:
            params = holder.get("parameters")
            if not isinstance(params, list):
                continue
            kept = [p for p in params if not (isinstance(p, dict) and "$ref" in p)]
            if len(kept) != len(params):
                logger.warning("Ignoring referenced parameters under %s", pattern)
                holder["parameters"] = kept


def load_spec(text: str, max_ref_depth: int = DEFAULT_MAX_DEPTH) -> Spec:
    """Parse and resolve specification text."""
    spec = build_spec(parse_spec_text(text), max_ref_depth=max_ref_depth)
    logger.debug(
        "Loaded '%s' %s with %d paths", spec.info.title, spec.info.version, len(spec.paths)
    )
    return spec


def read_spec_source(source: str | Path) -> str:
    """Read spec text from a local file or an http(s) URL."""
    source_str = str(source)
    if source_str.startswith(("http://", "https://")):
        try:
            response = requests.get(source_str, timeout=FETCH_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as e:
            raise SpecLoadError(f"Failed to fetch {source_str}: {e}") from e
        return response.text

    try:
        return Path(source).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SpecLoadError(f"Failed to read {source_str}: {e}") from e


def load_spec_file(source: str | Path, max_ref_depth: int = DEFAULT_MAX_DEPTH) -> Spec:
    """Load a specification from a file path or URL."""
    return load_spec(read_spec_source(source), max_ref_depth=max_ref_depth)
