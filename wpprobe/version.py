"""Semantic versions, release checks and plugin version detection."""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass

import requests

from wpprobe.httpclient import HTTPClientManager, HTTPError

TAGS_URL = "https://api.github.com/repos/Chocapikk/wpprobe/tags"

README_NAMES = ("readme.txt", "Readme.txt", "README.txt")

_SEMVER_RE = re.compile(
    r"^v?([0-9]+)(\.[0-9]+)?(\.[0-9]+)?"
    r"(-([0-9A-Za-z\-]+(\.[0-9A-Za-z\-]+)*))?"
    r"(\+([0-9A-Za-z\-]+(\.[0-9A-Za-z\-]+)*))?$"
)

_README_VERSION_RE = re.compile(r"(?:Stable tag|Version):[\t\n\f\r ]*([0-9A-Za-z.\-]+)")

_INT64_MAX = 2**63 - 1


def _parse_int(text: str) -> int | None:
    if not re.fullmatch(r"[+-]?[0-9]+", text):
        return None
    value = int(text)
    return value if -_INT64_MAX - 1 <= value <= _INT64_MAX else None


def _compare_pre_part(s: str, o: str) -> int:
    if s == o:
        return 0
    if s == "":
        return -1
    if o == "":
        return 1
    si, oi = _parse_int(s), _parse_int(o)
    if si is None and oi is None:
        return 1 if s > o else -1
    if si is None:
        return 1
    if oi is None:
        return -1
    return 1 if si > oi else -1


def _compare_prerelease(a: str, b: str) -> int:
    a_parts, b_parts = a.split("."), b.split(".")
    for i in range(max(len(a_parts), len(b_parts))):
        s = a_parts[i] if i < len(a_parts) else ""
        o = b_parts[i] if i < len(b_parts) else ""
        result = _compare_pre_part(s, o)
        if result:
            return result
    return 0


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class SemVer:
    """A semantic version; missing minor and patch numbers default to 0."""

    major: int
    minor: int = 0
    patch: int = 0
    prerelease: str = ""
    metadata: str = ""
    original: str = ""

    @classmethod
    def parse(cls, text: str) -> SemVer:
        """Parse ``text``, accepting an optional leading "v"; raise ValueError if invalid."""
        match = _SEMVER_RE.match(text)
        if match is None:
            raise ValueError(f"invalid semantic version: {text!r}")
        numbers = [match.group(1), match.group(2), match.group(3)]
        values = []
        for number in numbers:
            if number is None:
                values.append(0)
                continue
            value = int(number.lstrip("."))
            if value > _INT64_MAX:
                raise ValueError(f"invalid semantic version: {text!r}")
            values.append(value)
        return cls(
            major=values[0],
            minor=values[1],
            patch=values[2],
            prerelease=match.group(5) or "",
            metadata=match.group(8) or "",
            original=text,
        )

    def compare(self, other: SemVer) -> int:
        """Return -1, 0 or 1; build metadata is ignored."""
        for mine, theirs in (
            (self.major, other.major),
            (self.minor, other.minor),
            (self.patch, other.patch),
        ):
            if mine != theirs:
                return 1 if mine > theirs else -1
        if not self.prerelease and not other.prerelease:
            return 0
        if not self.prerelease:
            return 1
        if not other.prerelease:
            return -1
        return _compare_prerelease(self.prerelease, other.prerelease)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self.compare(other) == 0

    def __lt__(self, other: SemVer) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self.compare(other) < 0

    def __hash__(self) -> int:
        return hash((self.major, self.minor, self.patch, self.prerelease))

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.metadata:
            text += f"+{self.metadata}"
        return text


def _try_parse(text: str) -> SemVer | None:
    try:
        return SemVer.parse(text)
    except ValueError:
        return None


def check_latest_version(current_version: str, tags_url: str = TAGS_URL) -> tuple[str, bool]:
    """Return the newest released version and whether ``current_version`` is at least that.

    Any failure to fetch or read the tag list yields ("unknown", False).
    """
    try:
        resp = requests.get(tags_url, timeout=15)
        tags = resp.json()
    except (requests.RequestException, ValueError):
        return "unknown", False
    if not isinstance(tags, list) or not tags:
        return "unknown", False

    versions = []
    for tag in tags:
        if tag is None:
            name = ""
        elif isinstance(tag, dict) and isinstance(tag.get("name", ""), str):
            name = tag.get("name", "")
        else:
            return "unknown", False
        parsed = _try_parse(name.removeprefix("v"))
        if parsed is not None:
            versions.append(parsed)
    if not versions:
        return "unknown", False

    latest = max(versions)
    current = _try_parse(current_version.removeprefix("v"))
    if current is None:
        return str(latest), False
    return str(latest), current >= latest


def get_plugin_version(target: str, plugin: str, threads: int = 0, headers=None) -> str:
    """Read a plugin's version from its readme on ``target``; "unknown" if not found.

    ``threads`` is accepted for call compatibility and not used.
    """
    client = HTTPClientManager(10.0, headers)
    return fetch_version_from_readme(client, target, plugin)


def fetch_version_from_readme(client: HTTPClientManager, target: str, plugin: str) -> str:
    """Try each readme name in turn and return the first Stable tag/Version found."""
    for name in README_NAMES:
        url = f"{target}/wp-content/plugins/{plugin}/{name}"
        try:
            body = client.get(url)
        except HTTPError:
            continue
        match = _README_VERSION_RE.search(body)
        if match:
            return match.group(1).strip()
    return "unknown"


def is_version_vulnerable(version: str, from_version: str, to_version: str) -> bool:
    """True if ``version`` lies within [from_version, to_version]; False on bad input."""
    if not version or not from_version or not to_version:
        return False
    v, low, high = _try_parse(version), _try_parse(from_version), _try_parse(to_version)
    if v is None or low is None or high is None:
        return False
    return low <= v <= high