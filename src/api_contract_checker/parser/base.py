"""Typed models for a resolved OpenAPI document.

The loader turns raw JSON/YAML into these models after references are
inlined and schemas normalized, so validators never look at raw dicts.
"""

from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator

HTTP_METHODS = ("get", "post", "put", "patch", "delete", "options", "head")


def _status_key(key: Any) -> str:
    key = str(key)
    if len(key) == 3 and key[1:].lower() == "xx":
        return key.upper()
    return key


class _SpecModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


class Schema(_SpecModel):
    """A schema node. Only the keywords the validator understands are kept."""

    type: str | list[str] | None = None
    properties: dict[str, "Schema"] = {}
    items: "Schema | None" = None
    required: list[str] = []
    enum: list[Any] | None = None
    format: str | None = None
    pattern: str | None = None
    minimum: int | float | None = None
    maximum: int | float | None = None
    exclusive_minimum: bool | int | float | None = Field(None, alias="exclusiveMinimum")
    exclusive_maximum: bool | int | float | None = Field(None, alias="exclusiveMaximum")
    multiple_of: int | float | None = Field(None, alias="multipleOf")
    min_length: int | None = Field(None, alias="minLength")
    max_length: int | None = Field(None, alias="maxLength")
    min_items: int | None = Field(None, alias="minItems")
    max_items: int | None = Field(None, alias="maxItems")
    unique_items: bool = Field(False, alias="uniqueItems")
    min_properties: int | None = Field(None, alias="minProperties")
    max_properties: int | None = Field(None, alias="maxProperties")
    all_of: list["Schema"] = Field([], alias="allOf")
    any_of: list["Schema"] = Field([], alias="anyOf")
    one_of: list["Schema"] = Field([], alias="oneOf")
    ref: str | None = Field(None, alias="$ref")

    @field_validator("required", mode="before")
    @classmethod
    def _required_names_only(cls, value: Any) -> Any:
        # `required: true` on a property schema is a common authoring mistake
        if not isinstance(value, list):
            return []
        return value

    @property
    def types(self) -> list[str]:
        """Declared types as a list (empty when the node is untyped)."""
        if self.type is None:
            return []
        if isinstance(self.type, str):
            return [self.type]
        return list(self.type)

    @property
    def primary_type(self) -> str | None:
        """First declared type that is not ``null``."""
        for t in self.types:
            if t != "null":
                return t
        return None


class Parameter(_SpecModel):
    """A single operation parameter (path, query, header, or cookie)."""

    name: str
    location: str = Field(alias="in")  # path / query / header / cookie
    required: bool = False
    schema_: Schema | None = Field(None, alias="schema")
    description: str = ""


class MediaType(_SpecModel):
    schema_: Schema | None = Field(None, alias="schema")


class RequestBody(_SpecModel):
    required: bool = False
    content: dict[str, MediaType] = {}


class Header(_SpecModel):
    required: bool = False
    schema_: Schema | None = Field(None, alias="schema")


class ResponseDef(_SpecModel):
    description: str = ""
    content: dict[str, MediaType] = {}
    headers: dict[str, Header] = {}


class Operation(_SpecModel):
    """One documented (path template, method) pair."""

    operation_id: str | None = Field(None, alias="operationId")
    summary: str = ""
    tags: list[str] = []
    parameters: list[Parameter] = []
    request_body: RequestBody | None = Field(None, alias="requestBody")
    responses: dict[str, ResponseDef] = {}

    @field_validator("responses", mode="before")
    @classmethod
    def _status_keys_as_strings(cls, value: Any) -> Any:
        # YAML reads `200:` as an int key; `2xx` and `2XX` are the same class
        if isinstance(value, dict):
            return {_status_key(k): v for k, v in value.items()}
        return value


class PathItem(_SpecModel):
    """Operations under one path template plus shared path-level parameters."""

    parameters: list[Parameter] = []
    get: Operation | None = None
    post: Operation | None = None
    put: Operation | None = None
    patch: Operation | None = None
    delete: Operation | None = None
    options: Operation | None = None
    head: Operation | None = None

    def operation(self, method: str) -> Operation | None:
        method = method.lower()
        if method not in HTTP_METHODS:
            return None
        return getattr(self, method)

    def methods(self) -> list[str]:
        return [m for m in HTTP_METHODS if getattr(self, m) is not None]


class Info(_SpecModel):
    title: str
    version: str
    description: str = ""

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_string(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value


class Server(_SpecModel):
    url: str
    description: str = ""


class Components(_SpecModel):
    schemas: dict[str, Schema] = {}

    @field_validator("schemas", mode="before")
    @classmethod
    def _null_schemas(cls, value: Any) -> Any:
        return {} if value is None else value


class Spec(_SpecModel):
    """A fully resolved specification: refs inlined, nullable flags rewritten."""

    openapi: str | None = None
    swagger: str | None = None
    info: Info
    servers: list[Server] = []
    paths: dict[str, PathItem]
    components: Components = Components()

    @field_validator("components", mode="before")
    @classmethod
    def _null_components(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("openapi", "swagger", mode="before")
    @classmethod
    def _spec_version_as_string(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @property
    def base_paths(self) -> list[str]:
        """Path prefixes declared by ``servers`` (``/`` excluded)."""
        prefixes = []
        for server in self.servers:
            prefix = urlsplit(server.url).path.rstrip("/")
            if prefix and prefix not in prefixes:
                prefixes.append(prefix)
        return prefixes

    def operations(self) -> list[tuple[str, str, Operation]]:
        """All (template, METHOD, operation) triples in declaration order."""
        result = []
        for pattern, item in self.paths.items():
            for method in item.methods():
                result.append((pattern, method.upper(), item.operation(method)))
        return result


Schema.model_rebuild()
