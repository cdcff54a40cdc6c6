"""Result writers (CSV and JSON lines), line reading and storage paths."""

from __future__ import annotations

import csv
import json
import os
import threading
from dataclasses import dataclass, field
from typing import Iterable, Protocol

import platformdirs

from wpprobe.logger import DEFAULT_LOGGER

APP_NAME = "wpprobe"

CSV_HEADER = (
    "URL",
    "Plugin",
    "Version",
    "Severity",
    "AuthType",
    "CVEs",
    "CVE Links",
    "CVSS Score",
    "CVSS Vector",
    "Title",
)

SUPPORTED_FORMATS = ("csv", "json")

# Ranks used when ordering results; severities not listed rank before all others.
_SEVERITY_ORDER = {
    "critical": 1,
    "high": 2,
    "medium": 3,
    "low": 4,
    "unknown": 5,
    "N/A": 6,
}

_KNOWN_AUTH_TYPES = ("auth", "unauth", "privileged")

_JSON_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


@dataclass
class PluginEntry:
    """One detected plugin, with at most one vulnerability's details."""

    plugin: str = ""
    version: str = ""
    severity: str = ""
    cves: list[str] = field(default_factory=list)
    cve_links: list[str] = field(default_factory=list)
    title: str = ""
    auth_type: str = ""
    cvss_score: float = 0.0
    cvss_vector: str = ""


class ResultWriter(Protocol):
    def write_results(self, url: str, results: Iterable[PluginEntry]) -> None: ...

    def close(self) -> None: ...


def _auth_type_order(auth: str) -> int:
    return {"unauth": 0, "auth": 1}.get(auth.lower(), 2)


def _format_score(score: float) -> str:
    return f"{score:.1f}"


class CSVWriter:
    """Writes results as CSV rows; the file is truncated and given a header."""

    def __init__(self, filename: str) -> None:
        self._lock = threading.Lock()
        try:
            self._file = open(filename, "w", newline="", encoding="utf-8")
        except OSError as exc:
            DEFAULT_LOGGER.error(f"Failed to open CSV file: {exc}")
            raise
        self._writer = csv.writer(self._file, lineterminator="\n")
        self._writer.writerow(CSV_HEADER)
        self._file.flush()

    def write_results(self, url: str, results: Iterable[PluginEntry]) -> None:
        """Write one row per entry, most severe first, unauthenticated before authenticated."""
        ordered = sorted(
            results,
            key=lambda e: (_SEVERITY_ORDER.get(e.severity, 0), _auth_type_order(e.auth_type)),
        )
        with self._lock:
            self._writer.writerows(
                (
                    url,
                    entry.plugin,
                    entry.version,
                    entry.severity,
                    entry.auth_type,
                    ", ".join(entry.cves),
                    ", ".join(entry.cve_links),
                    _format_score(entry.cvss_score),
                    entry.cvss_vector,
                    entry.title,
                )
                for entry in ordered
            )
            self._file.flush()

    def close(self) -> None:
        with self._lock:
            if not self._file.closed:
                self._file.flush()
                self._file.close()

    def __enter__(self) -> CSVWriter:
        return self

    def __exit__(self, *args) -> None:
        self.close()


def _json_number(value: float):
    if float(value).is_integer() and abs(value) < 1e21:
        return int(value)
    return value


def _encode_json(obj) -> str:
    text = json.dumps(obj, ensure_ascii=False, separators=(",", ":"))
    for char, escaped in _JSON_ESCAPES:
        text = text.replace(char, escaped)
    return text


def _normalize_auth(auth_type: str) -> str:
    auth = auth_type.lower()
    if auth not in _KNOWN_AUTH_TYPES:
        auth = "unknown"
    return auth.capitalize()


def _build_plugins(results: Iterable[PluginEntry]) -> dict[str, list[dict]]:
    # plugin -> version -> severity -> list of auth groups, all in first-seen order
    plugins: dict[str, dict[str, dict[str, list[dict]]]] = {}
    for entry in results:
        versions = plugins.setdefault(entry.plugin, {})
        severities = versions.setdefault(entry.version, {})
        auth_groups = severities.setdefault(entry.severity, [])
        auth_groups.append(
            {
                "auth_type": _normalize_auth(entry.auth_type),
                "vulnerabilities": [
                    {
                        "cve": entry.cves[0] if entry.cves else "",
                        "cve_link": entry.cve_links[0] if entry.cve_links else "",
                        "title": entry.title,
                        "cvss_score": _json_number(entry.cvss_score),
                        "cvss_vector": entry.cvss_vector,
                    }
                ],
            }
        )

    output: dict[str, list[dict]] = {}
    for name in sorted(plugins):
        version_groups = []
        for version, severities in plugins[name].items():
            ordered = sorted(
                severities.items(),
                key=lambda item: _SEVERITY_ORDER.get(item[0].lower(), 0),
            )
            version_groups.append(
                {
                    "version": version,
                    "severities": [{sev.lower(): groups} for sev, groups in ordered],
                }
            )
        output[name] = version_groups
    return output


class JSONWriter:
    """Appends one JSON document per scanned URL, each on its own line."""

    def __init__(self, output: str) -> None:
        self._lock = threading.Lock()
        try:
            self._file = open(output, "a", encoding="utf-8")
        except OSError as exc:
            DEFAULT_LOGGER.error(f"Failed to open JSON file: {exc}")
            raise

    def write_results(self, url: str, results: Iterable[PluginEntry]) -> None:
        """Group results by plugin, version, severity and auth type and append them."""
        document = {"url": url, "plugins": _build_plugins(results)}
        with self._lock:
            self._file.write("\n")
            self._file.write(_encode_json(document))
            self._file.flush()

    def close(self) -> None:
        with self._lock:
            if not self._file.closed:
                self._file.close()

    def __enter__(self) -> JSONWriter:
        return self

    def __exit__(self, *args) -> None:
        self.close()


def _extension(path: str) -> str:
    base = os.path.basename(path)
    dot = base.rfind(".")
    return base[dot + 1 :] if dot >= 0 else ""


def detect_output_format(output_file: str) -> str:
    """Return "csv" or "json" from the file extension, warning on anything else."""
    if not output_file:
        return "csv"
    ext = _extension(output_file)
    if ext in SUPPORTED_FORMATS:
        return ext
    print(f"⚠️ Unsupported output format: {ext}. Defaulting to CSV.")
    return "csv"


def get_writer(output_file: str) -> CSVWriter | JSONWriter:
    """Return a JSONWriter for *.json files and a CSVWriter otherwise."""
    if output_file.endswith(".json"):
        return JSONWriter(output_file)
    return CSVWriter(output_file)


def read_lines(filename: str) -> list[str]:
    """Return the lines of a text file without their line endings."""
    try:
        with open(filename, encoding="utf-8", newline="") as handle:
            lines = []
            for line in handle:
                line = line.removesuffix("\n").removesuffix("\r")
                lines.append(line)
            return lines
    except OSError as exc:
        DEFAULT_LOGGER.error(f"Failed to open file: {exc}")
        raise


def get_storage_path(filename: str) -> str:
    """Return the path of ``filename`` inside the user's wpprobe config directory."""
    storage = platformdirs.user_config_dir(APP_NAME, appauthor=False, roaming=True)
    try:
        os.makedirs(storage, mode=0o755, exist_ok=True)
    except OSError as exc:
        DEFAULT_LOGGER.error(f"Failed to create storage directory: {exc}")
        raise
    return os.path.join(storage, filename)