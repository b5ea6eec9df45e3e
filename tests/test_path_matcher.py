import pytest

from api_contract_checker.config import MatchMode, TieBreak
from api_contract_checker.parser.base import Spec
from api_contract_checker.validator.paths import (
    PathMatcher,
    match_path,
    request_path,
    template_params,
    template_regex,
)

USER_ID = "550e8400-e29b-41d4-a716-446655440001"


def _spec(paths: dict, servers: list | None = None) -> Spec:
    return Spec.model_validate({
        "openapi": "3.0.0",
        "info": {"title": "t", "version": "1"},
        "servers": servers or [],
        "paths": paths,
    })


class TestTemplateRegex:
    def test_placeholders_capture_one_segment(self):
        regex = template_regex("/users/{userId}/posts/{postId}")
        assert regex.match("/users/1/posts/2").groups() == ("1", "2")
        assert regex.match("/users/1/2/posts/3") is None

    def test_literal_characters_escaped(self):
        regex = template_regex("/files/{name}.json")
        assert regex.match("/files/report.json").group(1) == "report"
        assert regex.match("/files/reportxjson") is None

    def test_trailing_newline_not_matched(self):
        assert template_regex("/users").match("/users\n") is None
        assert template_regex("/users", anchored=False).search("/api/users\n") is None

    def test_template_params_in_order(self):
        assert template_params("/a/{x}/b/{y}") == ["x", "y"]


class TestRequestPath:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("/users?limit=1", "/users"),
            ("/users#top", "/users"),
            ("https://api.example.com/users/1?x=1#f", "/users/1"),
            ("https://api.example.com", "/"),
            ("/users", "/users"),
        ],
    )
    def test_strip_query_fragment_and_host(self, url, expected):
        assert request_path(url) == expected


class TestPathMatcher:
    def test_match_with_query_string(self):
        spec = _spec({"/users/{userId}": {"get": {}}})
        result = match_path(spec, f"/users/{USER_ID}?includeDetails=true", "GET")
        assert result.pattern == "/users/{userId}"
        assert result.method == "get"
        assert result.operation is not None
        assert result.path_params == {"userId": USER_ID}

    def test_absolute_url(self):
        spec = _spec({"/users/{userId}": {"get": {}}})
        result = match_path(spec, f"https://api.example.com/users/{USER_ID}", "get")
        assert result.path_params == {"userId": USER_ID}

    def test_recovers_every_placeholder_value(self):
        spec = _spec({"/orgs/{org}/repos/{repo}/issues/{number}": {"get": {}}})
        result = match_path(spec, "/orgs/acme/repos/widgets/issues/42", "GET")
        assert result.path_params == {"org": "acme", "repo": "widgets", "number": "42"}

    def test_percent_encoded_values_decoded(self):
        spec = _spec({"/tags/{name}": {"get": {}}})
        assert match_path(spec, "/tags/hello%20world", "GET").path_params == {"name": "hello world"}

    def test_no_match(self):
        spec = _spec({"/users": {"get": {}}})
        assert match_path(spec, "/helloworld", "GET") is None

    def test_trailing_newline_rejected(self):
        spec = _spec({"/users": {"get": {}}})
        assert match_path(spec, "/users\n", "GET") is None
        assert match_path(spec, "/api/users\n", "GET") is None

    def test_placeholder_does_not_span_segments(self):
        spec = _spec({"/users/{userId}": {"get": {}}})
        assert match_path(spec, "/users/1/extra", "GET") is None

    def test_method_not_declared(self):
        spec = _spec({"/users": {"get": {}}})
        result = match_path(spec, "/users", "PUT")
        assert result.pattern == "/users"
        assert result.operation is None

    def test_template_declaring_method_preferred(self):
        spec = _spec({"/users/{userId}": {"get": {}}, "/users/me": {"patch": {}}})
        result = match_path(spec, "/users/me", "PATCH")
        assert result.pattern == "/users/me"
        assert result.operation is not None


class TestSuffixMatching:
    def test_unknown_prefix_tolerated(self):
        spec = _spec({"/users/{id}": {"get": {}}})
        assert match_path(spec, "/users/123", "GET").path_params == {"id": "123"}
        assert match_path(spec, "/api/v2/users/123", "GET").path_params == {"id": "123"}

    def test_prefix_must_end_at_segment_boundary(self):
        spec = _spec({"/users/{id}": {"get": {}}})
        assert match_path(spec, "/superusers/123", "GET") is None

    def test_first_declared_wins(self):
        spec = _spec({"/a/{x}": {"get": {}}, "/b/a/{x}": {"get": {}}})
        assert match_path(spec, "/b/a/1", "GET").pattern == "/a/{x}"

    def test_longest_tie_break(self):
        spec = _spec({"/a/{x}": {"get": {}}, "/b/a/{x}": {"get": {}}})
        result = match_path(spec, "/b/a/1", "GET", tie_break=TieBreak.LONGEST)
        assert result.pattern == "/b/a/{x}"
        assert result.path_params == {"x": "1"}


class TestExactMatching:
    def test_prefix_rejected(self):
        spec = _spec({"/users/{id}": {"get": {}}})
        assert match_path(spec, "/api/users/1", "GET", match_mode=MatchMode.EXACT) is None

    def test_server_base_path_stripped(self):
        spec = _spec({"/users/{id}": {"get": {}}}, servers=[{"url": "https://example.com/api/v2"}])
        result = match_path(spec, "https://example.com/api/v2/users/7", "GET", match_mode="exact")
        assert result.path_params == {"id": "7"}

    def test_longest_prefers_literal_template(self):
        spec = _spec({"/users/{id}": {"get": {}}, "/users/me": {"get": {}}})
        matcher = PathMatcher(spec, MatchMode.EXACT, TieBreak.LONGEST)
        assert matcher.match("/users/me", "GET").pattern == "/users/me"
        assert matcher.match("/users/42", "GET").pattern == "/users/{id}"

    def test_patterns(self):
        spec = _spec({"/b": {"get": {}}, "/a": {"get": {}}})
        assert PathMatcher(spec).patterns() == ["/b", "/a"]
