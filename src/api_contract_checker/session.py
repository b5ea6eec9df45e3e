"""Holds the active specification and the captured traffic validated against it."""

import logging
from pathlib import Path

from api_contract_checker.config import Settings
from api_contract_checker.parser.swagger import SpecLoadError, read_spec_source
from api_contract_checker.traffic import TrafficEntry, TrafficLog, TrafficRecord, TrafficValidation
from api_contract_checker.validator.engine import OpenApiValidator

logger = logging.getLogger(__name__)


class ValidationSession:
    """Active validator plus traffic log.

    Loading a new spec swaps the validator reference only after the new
    spec was built, so a failed load leaves the previous one in place and
    validations already running keep using the spec they started with.
    """

    def __init__(self, settings: Settings | None = None, log: TrafficLog | None = None):
        self.settings = settings or Settings()
        self.log = log or TrafficLog(self.settings.max_traffic_entries)
        self._validator: OpenApiValidator | None = None

    @property
    def validator(self) -> OpenApiValidator | None:
        return self._validator

    @property
    def loaded(self) -> bool:
        return self._validator is not None

    def load(self, text: str) -> OpenApiValidator:
        try:
            validator = OpenApiValidator.from_text(text, self.settings)
        except SpecLoadError as e:
            logger.warning("Keeping previous specification, load failed: %s", e)
            raise
        self._validator = validator
        logger.info(
            "Loaded specification '%s' %s", validator.spec.info.title, validator.spec.info.version
        )
        self.log.revalidate(self.validate)
        return validator

    def load_source(self, source: str | Path) -> OpenApiValidator:
        return self.load(read_spec_source(source))

    def clear(self) -> None:
        self._validator = None
        self.log.revalidate(self.validate)

    def validate(self, record: TrafficRecord) -> TrafficValidation | None:
        """Validate against the active spec; None when no spec is loaded."""
        validator = self._validator
        if validator is None:
            return None
        return validator.validate_traffic(record)

    def capture(self, record: TrafficRecord, tab_id: int | None = None) -> TrafficEntry:
        """Validate a record and add it to the traffic log."""
        return self.log.add(record, validation=self.validate(record), tab_id=tab_id)
