from pathlib import Path

import pytest

from api_contract_checker.config import Settings
from api_contract_checker.parser.swagger import SpecLoadError
from api_contract_checker.session import ValidationSession
from api_contract_checker.traffic import TrafficLog, TrafficRecord
from api_contract_checker.validator.errors import ErrorCode

FIXTURES = Path(__file__).parent / "fixtures"
USERS_API = (FIXTURES / "users_api.yaml").read_text(encoding="utf-8")
PETSTORE = (FIXTURES / "petstore_v2.json").read_text(encoding="utf-8")


def _list_users() -> TrafficRecord:
    return TrafficRecord(method="GET", path="/users", status=200, response_body={"users": []})


class TestValidationSession:
    def test_no_spec_loaded(self):
        session = ValidationSession()
        assert not session.loaded
        assert session.validator is None
        assert session.validate(_list_users()) is None

    def test_capture_validates_and_logs(self):
        session = ValidationSession()
        session.load(USERS_API)
        entry = session.capture(_list_users(), tab_id=7)
        assert entry.validation.valid
        assert session.log.entries(tab_id=7) == [entry]

    def test_capacity_from_settings(self):
        session = ValidationSession(Settings(max_traffic_entries=2))
        for _ in range(3):
            session.capture(_list_users())
        assert len(session.log) == 2

    def test_load_revalidates_captured_traffic(self):
        session = ValidationSession()
        entry = session.capture(_list_users())
        assert entry.validation is None

        session.load(USERS_API)
        assert session.log.get(entry.id).validation.valid

        session.load(PETSTORE)
        result = session.log.get(entry.id).validation
        assert result.request.error_codes == [ErrorCode.PATH_NOT_FOUND]

    def test_failed_load_keeps_previous_spec(self):
        session = ValidationSession()
        previous = session.load(USERS_API)
        with pytest.raises(SpecLoadError):
            session.load("openapi: 3.0.0\ninfo: {title: t, version: '1'}\n")
        assert session.validator is previous

    def test_malformed_components_fail_load(self):
        session = ValidationSession()
        previous = session.load(USERS_API)
        broken = (
            "openapi: 3.0.0\ninfo: {title: t, version: '1'}\n"
            "paths:\n  /a:\n    get:\n      responses: {'200': {description: ok}}\n"
            "components:\n  schemas: [1, 2]\n"
        )
        with pytest.raises(SpecLoadError, match="components.schemas"):
            session.load(broken)
        assert session.validator is previous

    def test_clear_drops_spec_and_results(self):
        session = ValidationSession(log=TrafficLog())
        session.load(USERS_API)
        entry = session.capture(_list_users())
        session.clear()
        assert not session.loaded
        assert session.log.get(entry.id).validation is None

    def test_load_source(self):
        session = ValidationSession()
        validator = session.load_source(FIXTURES / "petstore_v2.json")
        assert validator.spec.info.title == "Petstore"
        assert session.validator is validator
