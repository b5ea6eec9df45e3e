"""Match request URLs to documented path templates.

A template such as ``/users/{userId}`` becomes a regex where each
placeholder captures exactly one path segment. In suffix mode the regex
is only anchored at the end, so ``/api/v2/users/123`` still matches when
the document does not know about the ``/api/v2`` prefix.
"""

import logging
import re
from urllib.parse import unquote, urlsplit

from pydantic import BaseModel, ConfigDict

from api_contract_checker.config import MatchMode, TieBreak
from api_contract_checker.parser.base import Operation, PathItem, Spec

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{([^{}/]+)\}")


class PathMatch(BaseModel):
    """The template a request resolved to.

    ``operation`` is None when the template matched but does not declare
    the request method.
    """

    model_config = ConfigDict(frozen=True)

    pattern: str
    method: str
    path_item: PathItem
    operation: Operation | None
    path_params: dict[str, str] = {}


def template_regex(pattern: str, anchored: bool = True) -> re.Pattern:
    """Compile a path template; placeholders become ``([^/]+)`` groups."""
    parts = []
    pos = 0
    for m in PLACEHOLDER_RE.finditer(pattern):
        parts.append(re.escape(pattern[pos:m.start()]))
        parts.append("([^/]+)")
        pos = m.end()
    parts.append(re.escape(pattern[pos:]))
    prefix = "^" if anchored else ""
    return re.compile(prefix + "".join(parts) + r"\Z")


def template_params(pattern: str) -> list[str]:
    return PLACEHOLDER_RE.findall(pattern)


def request_path(url: str) -> str:
    """Path part of an absolute URL or of a path with query/fragment."""
    path = url.split("#", 1)[0].split("?", 1)[0]
    parts = urlsplit(path)
    if parts.scheme and parts.netloc:
        return parts.path or "/"
    return path


class _Template:
    def __init__(self, pattern: str, item: PathItem, index: int, anchored: bool):
        self.pattern = pattern
        self.item = item
        self.index = index
        self.names = template_params(pattern)
        self.regex = template_regex(pattern, anchored=anchored)


class PathMatcher:
    """Resolves (URL, method) pairs against the templates of one spec."""

    def __init__(
        self,
        spec: Spec,
        match_mode: MatchMode = MatchMode.SUFFIX,
        tie_break: TieBreak = TieBreak.FIRST,
    ):
        self.match_mode = MatchMode(match_mode)
        self.tie_break = TieBreak(tie_break)
        self.base_paths = spec.base_paths
        anchored = self.match_mode is MatchMode.EXACT
        self._templates = [
            _Template(pattern, item, index, anchored)
            for index, (pattern, item) in enumerate(spec.paths.items())
        ]

    def match(self, url: str, method: str) -> PathMatch | None:
        """Find the operation for a request, or None when no template matches."""
        path = request_path(url)
        candidates = self._candidates(path)
        if not candidates and self.match_mode is MatchMode.EXACT:
            for base in self.base_paths:
                if path.startswith(base + "/"):
                    candidates = self._candidates(path[len(base):])
                    if candidates:
                        break
        if not candidates:
            logger.debug("No template matches %s", path)
            return None

        method = method.lower()
        with_method = [c for c in candidates if c[0].item.operation(method) is not None]
        template, m = (with_method or candidates)[0]
        params = {name: unquote(value) for name, value in zip(template.names, m.groups())}
        return PathMatch(
            pattern=template.pattern,
            method=method,
            path_item=template.item,
            operation=template.item.operation(method),
            path_params=params,
        )

    def _candidates(self, path: str) -> list[tuple[_Template, re.Match]]:
        found = []
        for template in self._templates:
            m = template.regex.search(path)
            if m is not None:
                found.append((template, m))
        if self.tie_break is TieBreak.LONGEST:
            # earliest start covers the most of the path; then fewer placeholders
            found.sort(key=lambda c: (c[1].start(), len(c[0].names), c[0].index))
        return found

    def patterns(self) -> list[str]:
        return [t.pattern for t in self._templates]


def match_path(
    spec: Spec,
    url: str,
    method: str,
    match_mode: MatchMode = MatchMode.SUFFIX,
    tie_break: TieBreak = TieBreak.FIRST,
) -> PathMatch | None:
    """One-off match; build a ``PathMatcher`` to reuse compiled templates."""
    return PathMatcher(spec, match_mode, tie_break).match(url, method)
