"""Captured traffic records and the bounded traffic log."""

import json
import time
import uuid
from collections import OrderedDict
from typing import Any, Callable

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from api_contract_checker.validator.errors import ValidationResult
from api_contract_checker.validator.params import parse_query_string

DEFAULT_MAX_ENTRIES = 1000


class TrafficRecord(BaseModel):
    """One captured request/response pair, as handed over by a capture tool.

    ``path`` may be an absolute URL or a bare path, with or without a query
    string. Bodies are parsed JSON values or raw text; None means absent.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    method: str
    path: str = Field(validation_alias=AliasChoices("path", "url"))
    headers: dict[str, str] = {}
    query_params: dict[str, str | list[str]] = Field(
        {}, validation_alias=AliasChoices("query_params", "queryParams")
    )
    body: Any = None
    status: int | None = None
    response_headers: dict[str, str] = Field(
        {}, validation_alias=AliasChoices("response_headers", "responseHeaders")
    )
    response_body: Any = Field(
        None, validation_alias=AliasChoices("response_body", "responseBody")
    )

    @classmethod
    def from_capture(
        cls,
        method: str,
        url: str,
        request_headers: dict[str, str] | None = None,
        request_text: str | None = None,
        status: int | None = None,
        response_headers: dict[str, str] | None = None,
        response_text: str | None = None,
    ) -> "TrafficRecord":
        """Build a record from captured text, JSON-decoding bodies when possible."""
        return cls(
            method=method.upper(),
            path=url,
            headers=request_headers or {},
            query_params=parse_query_string(url),
            body=_decode_text(request_text),
            status=status,
            response_headers=response_headers or {},
            response_body=_decode_text(response_text),
        )


def _decode_text(text: str | None) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


class TrafficValidation(BaseModel):
    """Request and response results for one traffic record."""

    model_config = ConfigDict(frozen=True)

    request: ValidationResult
    response: ValidationResult

    @property
    def request_valid(self) -> bool:
        return self.request.valid

    @property
    def response_valid(self) -> bool:
        return self.response.valid

    @property
    def valid(self) -> bool:
        return self.request.valid and self.response.valid


class TrafficEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: float
    record: TrafficRecord
    tab_id: int | None = None
    validation: TrafficValidation | None = None


class TrafficLog:
    """Captured entries keyed by correlation id, oldest evicted first."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: OrderedDict[str, TrafficEntry] = OrderedDict()

    def add(
        self,
        record: TrafficRecord,
        validation: TrafficValidation | None = None,
        tab_id: int | None = None,
        entry_id: str | None = None,
    ) -> TrafficEntry:
        entry = TrafficEntry(
            id=entry_id or uuid.uuid4().hex,
            timestamp=time.time(),
            record=record,
            tab_id=tab_id,
            validation=validation,
        )
        self._entries.pop(entry.id, None)
        self._entries[entry.id] = entry
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return entry

    def get(self, entry_id: str) -> TrafficEntry | None:
        return self._entries.get(entry_id)

    def remove(self, entry_id: str) -> bool:
        return self._entries.pop(entry_id, None) is not None

    def remove_tab(self, tab_id: int) -> int:
        """Drop every entry captured for a tab; returns how many were removed."""
        doomed = [k for k, e in self._entries.items() if e.tab_id == tab_id]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()

    def entries(self, tab_id: int | None = None) -> list[TrafficEntry]:
        if tab_id is None:
            return list(self._entries.values())
        return [e for e in self._entries.values() if e.tab_id == tab_id]

    def revalidate(self, validate: Callable[[TrafficRecord], TrafficValidation | None]) -> None:
        """Replace every entry's validation with ``validate(record)``."""
        for key, entry in list(self._entries.items()):
            self._entries[key] = entry.model_copy(update={"validation": validate(entry.record)})

    def __len__(self) -> int:
        return len(self._entries)
