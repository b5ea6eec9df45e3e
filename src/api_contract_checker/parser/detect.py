"""Auto-detect how a specification document is written."""


def detect_syntax(text: str) -> str:
    """Detect the serialization of a spec document.

    Returns: 'json' when the first non-blank character is ``{``, else 'yaml'.
    """
    if text.lstrip().startswith("{"):
        return "json"
    return "yaml"


def detect_version(doc: dict) -> str | None:
    """Detect the OpenAPI generation of a parsed document.

    Returns: 'openapi3', 'swagger2', or None when no version key is present.
    """
    if doc.get("openapi"):
        return "openapi3"
    if str(doc.get("swagger", "")).startswith("2"):
        return "swagger2"
    return None
