"""Filtering vulnerability records and rendering them as a per-plugin tree."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable
from dataclasses import dataclass

from wpprobe.wordfence import Vulnerability

SEVERITY_ORDER = ("critical", "high", "medium", "low", "unknown")

_BRANCH = "├── "
_LAST_BRANCH = "└── "
_INDENT = "│   "
_LAST_INDENT = "    "


def _color_enabled() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


@dataclass(frozen=True)
class _Style:
    """A foreground colour given as #RRGGBB, optionally bold."""

    color: str
    bold: bool = False

    def render(self, text: str) -> str:
        if not _color_enabled():
            return text
        red, green, blue = (int(self.color[i : i + 2], 16) for i in (1, 3, 5))
        prefix = f"\x1b[{'1;' if self.bold else ''}38;2;{red};{green};{blue}m"
        return f"{prefix}{text}\x1b[0m"


URL_STYLE = _Style("#00AEEF", bold=True)
CRITICAL_STYLE = _Style("#FF0000", bold=True)
HIGH_STYLE = _Style("#FF5733", bold=True)
MEDIUM_STYLE = _Style("#FFCC00", bold=True)
LOW_STYLE = _Style("#33CC33", bold=True)
UNKNOWN_STYLE = _Style("#888888")
AUTH_STYLE = _Style("#FFA500")
UNAUTH_STYLE = _Style("#FF3366", bold=True)
PRIVILEGED_STYLE = _Style("#AA66FF")

_SEVERITY_STYLES = {
    "critical": CRITICAL_STYLE,
    "high": HIGH_STYLE,
    "medium": MEDIUM_STYLE,
    "low": LOW_STYLE,
}


class Tree:
    """A labelled node whose children are strings or other trees."""

    def __init__(self, label: str = "") -> None:
        self.label = str(label)
        self.children: list[Tree | str] = []

    def child(self, *args) -> Tree:
        """Append children; nested lists and tuples are flattened. Returns self."""
        for item in args:
            if isinstance(item, Tree):
                self.children.append(item)
            elif isinstance(item, str):
                self.children.append(item)
            elif isinstance(item, Iterable):
                self.child(*item)
            else:
                self.children.append(str(item))
        return self

    def _render_children(self) -> list[str]:
        lines: list[str] = []
        last = len(self.children) - 1
        for position, node in enumerate(self.children):
            is_last = position == last
            branch = _LAST_BRANCH if is_last else _BRANCH
            indent = _LAST_INDENT if is_last else _INDENT
            if isinstance(node, Tree):
                label_lines = node.label.split("\n")
                sub_lines = node._render_children()
            else:
                label_lines = node.split("\n")
                sub_lines = []
            lines.append(branch + label_lines[0])
            lines.extend(indent + extra for extra in label_lines[1:])
            lines.extend(indent + sub for sub in sub_lines)
        return lines

    def render(self) -> str:
        """Return the tree drawn with box-drawing branches."""
        lines = self.label.split("\n") if self.label else []
        lines.extend(self._render_children())
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.render()


def any_filter_set(*args) -> bool:
    """True if any of the given filter values is non-empty."""
    return any(f != "" for f in args)


def _contains(haystack: str, needle: str) -> bool:
    return needle.lower() in haystack.lower()


def _equal_fold(a: str, b: str) -> bool:
    return a.casefold() == b.casefold()


def filter_all(
    vulns: Iterable[Vulnerability],
    cve: str = "",
    slug: str = "",
    title: str = "",
    sev: str = "",
    auth: str = "",
) -> list[Vulnerability]:
    """Keep the records matching every non-empty filter.

    CVE, slug and title match as case-insensitive substrings; severity and
    auth type must match exactly, ignoring case.
    """
    return [
        v
        for v in vulns
        if (not cve or _contains(v.cve, cve))
        and (not slug or _contains(v.slug, slug))
        and (not title or _contains(v.title, title))
        and (not sev or _equal_fold(v.severity, sev))
        and (not auth or _equal_fold(v.auth_type, auth))
    ]


def group_by_plugin(vulns: Iterable[Vulnerability]) -> dict[str, list[Vulnerability]]:
    """Group records by plugin slug, keeping their order within each group."""
    groups: dict[str, list[Vulnerability]] = {}
    for v in vulns:
        groups.setdefault(v.slug, []).append(v)
    return groups


def _severity_rank(severity: str) -> int:
    lowered = severity.lower()
    return SEVERITY_ORDER.index(lowered) if lowered in SEVERITY_ORDER else len(SEVERITY_ORDER)


def _severity_style(severity: str) -> _Style:
    return _SEVERITY_STYLES.get(severity.lower(), UNKNOWN_STYLE)


def _severity_label(severity: str) -> str:
    return _severity_style(severity).render(severity.lower().title())


def _format_cvss(score: float, severity: str) -> str:
    return _severity_style(severity).render(f"{score:.1f}")


def _format_auth(auth: str) -> str:
    lowered = auth.lower()
    if lowered == "auth":
        return AUTH_STYLE.render("Auth")
    if lowered == "unauth":
        return UNAUTH_STYLE.render("Unauth")
    if lowered == "privileged":
        return PRIVILEGED_STYLE.render("Privileged")
    return UNKNOWN_STYLE.render(auth)


def _summary_label(slug: str, vulns: list[Vulnerability]) -> str:
    counts = dict.fromkeys(SEVERITY_ORDER, 0)
    for v in vulns:
        severity = v.severity.lower()
        counts[severity if severity in counts else "unknown"] += 1
    return (
        f"{URL_STYLE.render(slug)}  "
        f"{CRITICAL_STYLE.render('C')}:{counts['critical']} "
        f"{HIGH_STYLE.render('H')}:{counts['high']} "
        f"{MEDIUM_STYLE.render('M')}:{counts['medium']} "
        f"{LOW_STYLE.render('L')}:{counts['low']} "
        f"{UNKNOWN_STYLE.render('U')}:{counts['unknown']}"
    )


def build_tree(
    root: Tree, by_plugin: dict[str, list[Vulnerability]], show_details: bool
) -> None:
    """Add one node per plugin, in slug order, to ``root``.

    Each node shows severity counts and a download link; with ``show_details``
    the vulnerabilities are listed under their severity, most severe first.
    """
    for slug in sorted(by_plugin):
        vulns = sorted(by_plugin[slug], key=lambda v: (_severity_rank(v.severity), v.cve))
        plugin_node = Tree(_summary_label(slug, vulns))
        plugin_node.child(Tree(f"Download: https://wordpress.org/plugins/{slug}/"))

        if show_details:
            for severity in SEVERITY_ORDER:
                entries = [v for v in vulns if _equal_fold(v.severity, severity)]
                if not entries:
                    continue
                severity_node = Tree(_severity_label(severity))
                for v in entries:
                    severity_node.child(
                        f"{v.cve} - {v.cve_link} [{v.affected_version}] "
                        f"Auth:{_format_auth(v.auth_type)} "
                        f"CVSS:{_format_cvss(v.cvss_score, v.severity)}"
                    )
                plugin_node.child(severity_node)

        root.child(plugin_node)