"""Downloading, storing and querying the Wordfence vulnerability feed."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from http import HTTPStatus

import requests

from wpprobe.files import get_storage_path
from wpprobe.logger import DEFAULT_LOGGER
from wpprobe.version import is_version_vulnerable

WORDFENCE_API = "https://www.wordfence.com/api/intelligence/v2/vulnerabilities/production"
DATABASE_FILE = "wordfence_vulnerabilities.json"

_FETCH_TIMEOUT = 15

_cached: list[Vulnerability] | None = None


class WordfenceError(Exception):
    """Raised when the vulnerability feed cannot be fetched, read or stored."""


@dataclass
class Vulnerability:
    """One affected version range of one plugin for one CVE."""

    title: str = ""
    slug: str = ""
    software_type: str = ""
    affected_version: str = ""
    from_version: str = ""
    from_inclusive: bool = False
    to_version: str = ""
    to_inclusive: bool = False
    severity: str = ""
    cve: str = ""
    cve_link: str = ""
    auth_type: str = ""
    cvss_score: float = 0.0
    cvss_vector: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> Vulnerability:
        """Build from a stored record; the software type is under the key "type"."""
        if not isinstance(data, dict):
            raise WordfenceError(f"invalid vulnerability record: {data!r}")
        return cls(
            title=data.get("title") or "",
            slug=data.get("slug") or "",
            software_type=data.get("type") or "",
            affected_version=data.get("affected_version") or "",
            from_version=data.get("from_version") or "",
            from_inclusive=bool(data.get("from_inclusive", False)),
            to_version=data.get("to_version") or "",
            to_inclusive=bool(data.get("to_inclusive", False)),
            severity=data.get("severity") or "",
            cve=data.get("cve") or "",
            cve_link=data.get("cve_link") or "",
            auth_type=data.get("auth_type") or "",
            cvss_score=float(data.get("cvss_score") or 0.0),
            cvss_vector=data.get("cvss_vector") or "",
        )

    def to_dict(self) -> dict:
        """Return the stored record form of this vulnerability."""
        data = asdict(self)
        data["type"] = data.pop("software_type")
        return data


def _detect_auth_type(cvss_vector: str, title: str) -> str:
    if "PR:N" in cvss_vector:
        return "Unauth"
    if "PR:L" in cvss_vector:
        return "Auth"
    if "PR:H" in cvss_vector:
        return "Privileged"
    lower_title = title.lower()
    if "unauth" in lower_title:
        return "Unauth"
    if "auth" in lower_title:
        return "Auth"
    return "Unknown"


def fetch_wordfence_data(api_url: str = WORDFENCE_API) -> dict:
    """Download the raw feed, keyed by vulnerability id."""
    try:
        resp = requests.get(api_url, timeout=_FETCH_TIMEOUT)
    except requests.RequestException as exc:
        raise WordfenceError(f"request failed: {exc}") from exc

    if resp.status_code == HTTPStatus.OK:
        DEFAULT_LOGGER.info("Decoding JSON data... This may take some time.")
        try:
            data = resp.json()
        except ValueError as exc:
            raise WordfenceError(f"JSON decoding error: {exc}") from exc
        if not isinstance(data, dict):
            raise WordfenceError("JSON decoding error: expected an object")
        DEFAULT_LOGGER.success("Successfully retrieved and processed Wordfence data.")
        return data

    if resp.status_code == HTTPStatus.TOO_MANY_REQUESTS:
        retry_after = resp.headers.get("Retry-After") or "a few minutes"
        raise WordfenceError(f"rate limit exceeded (429). Retry after {retry_after}")

    try:
        phrase = HTTPStatus(resp.status_code).phrase
    except ValueError:
        phrase = ""
    raise WordfenceError(f"unexpected API status: {resp.status_code} {phrase}")


def _handle_fetch_error(err: Exception) -> None:
    if "429" in str(err):
        DEFAULT_LOGGER.warning("Wordfence API rate limit hit (429). Please wait before retrying.")
    else:
        DEFAULT_LOGGER.error(f"Failed to retrieve Wordfence data: {err}")


def process_wordfence_data(wf_data: dict) -> list[Vulnerability]:
    """Flatten the raw feed into one entry per CVE, plugin and affected range."""
    vulnerabilities: list[Vulnerability] = []
    for record in wf_data.values():
        if not isinstance(record, dict):
            continue

        title = record.get("title") if isinstance(record.get("title"), str) else ""
        cvss_score, cvss_vector, cvss_rating = 0.0, "", ""
        cvss = record.get("cvss")
        if isinstance(cvss, dict):
            score = cvss.get("score")
            if isinstance(score, (int, float)) and not isinstance(score, bool):
                cvss_score = float(score)
            if isinstance(cvss.get("vector"), str):
                cvss_vector = cvss["vector"]
            if isinstance(cvss.get("rating"), str):
                cvss_rating = cvss["rating"].lower()

        auth_type = _detect_auth_type(cvss_vector, title)
        cve = record.get("cve") if isinstance(record.get("cve"), str) else ""
        cve_link = record.get("cve_link") if isinstance(record.get("cve_link"), str) else ""

        software_list = record.get("software")
        if not isinstance(software_list, list):
            continue
        for software in software_list:
            if not isinstance(software, dict) or not cve:
                continue
            slug = software.get("slug") if isinstance(software.get("slug"), str) else ""
            software_type = software.get("type") if isinstance(software.get("type"), str) else ""
            affected_versions = software.get("affected_versions")
            if not isinstance(affected_versions, dict):
                continue

            for label, affected in affected_versions.items():
                if not isinstance(affected, dict):
                    continue
                from_version = affected.get("from_version")
                to_version = affected.get("to_version")
                if not isinstance(from_version, str) or not isinstance(to_version, str):
                    continue
                vulnerabilities.append(
                    Vulnerability(
                        title=title,
                        slug=slug,
                        software_type=software_type,
                        affected_version=label,
                        from_version=from_version.replace("*", "0.0.0"),
                        from_inclusive=bool(affected.get("from_inclusive", False)),
                        to_version=to_version.replace("*", "999999.0.0"),
                        to_inclusive=bool(affected.get("to_inclusive", False)),
                        severity=cvss_rating,
                        cve=cve,
                        cve_link=cve_link,
                        auth_type=auth_type,
                        cvss_score=cvss_score,
                        cvss_vector=cvss_vector,
                    )
                )
    return vulnerabilities


def save_vulnerabilities_to_file(vulnerabilities: list[Vulnerability]) -> str:
    """Write the list to the local database file and return its path."""
    try:
        output_path = get_storage_path(DATABASE_FILE)
    except OSError as exc:
        DEFAULT_LOGGER.error(f"Error getting storage path: {exc}")
        raise WordfenceError(f"error getting storage path: {exc}") from exc

    try:
        with open(output_path, "w", encoding="utf-8") as handle:
            json.dump([v.to_dict() for v in vulnerabilities], handle, indent=2)
            handle.write("\n")
    except OSError as exc:
        DEFAULT_LOGGER.error(f"Error saving file: {exc}")
        raise WordfenceError(f"error saving file: {exc}") from exc

    DEFAULT_LOGGER.success(f"Wordfence data saved in {output_path}")
    return output_path


def update_wordfence(api_url: str = WORDFENCE_API) -> None:
    """Fetch the feed, flatten it and store it locally."""
    DEFAULT_LOGGER.info("Fetching Wordfence data...")
    try:
        data = fetch_wordfence_data(api_url)
    except WordfenceError as exc:
        _handle_fetch_error(exc)
        raise

    DEFAULT_LOGGER.info("Processing vulnerabilities...")
    vulnerabilities = process_wordfence_data(data)

    DEFAULT_LOGGER.info("Saving vulnerabilities to file...")
    try:
        save_vulnerabilities_to_file(vulnerabilities)
    except WordfenceError as exc:
        DEFAULT_LOGGER.error(f"Failed to save Wordfence data: {exc}")
        raise

    DEFAULT_LOGGER.success("Wordfence data updated successfully!")


def load_vulnerabilities(filename: str = DATABASE_FILE) -> list[Vulnerability]:
    """Read the local database once and return the cached list afterwards."""
    global _cached
    if _cached is not None:
        return _cached

    try:
        file_path = get_storage_path(filename)
    except OSError as exc:
        DEFAULT_LOGGER.warning(f"Failed to get storage path: {exc}")
        raise WordfenceError(f"failed to get storage path: {exc}") from exc

    try:
        with open(file_path, encoding="utf-8") as handle:
            raw = handle.read()
    except OSError as exc:
        DEFAULT_LOGGER.warning(f"Failed to read Wordfence JSON: {exc}")
        DEFAULT_LOGGER.info("Run 'wpprobe update-db' to fetch the latest vulnerability database.")
        DEFAULT_LOGGER.warning("The scan will proceed, but vulnerabilities will not be displayed.")
        raise WordfenceError(f"failed to read Wordfence JSON: {exc}") from exc

    try:
        records = json.loads(raw)
        if records is None:
            records = []
        if not isinstance(records, list):
            raise WordfenceError("expected a list of vulnerabilities")
        loaded = [Vulnerability.from_dict(record) for record in records]
    except (ValueError, TypeError, WordfenceError) as exc:
        DEFAULT_LOGGER.warning(f"JSON unmarshal error: {exc}")
        raise WordfenceError(f"JSON unmarshal error: {exc}") from exc

    _cached = loaded
    return _cached


def clear_cache() -> None:
    """Forget the loaded database so the next load reads the file again."""
    global _cached
    _cached = None


def get_vulnerabilities_for_plugin(plugin: str, version: str) -> list[Vulnerability]:
    """Return the known vulnerabilities of ``plugin`` that cover ``version``."""
    try:
        data = load_vulnerabilities(DATABASE_FILE)
    except WordfenceError:
        return []
    return [
        vuln
        for vuln in data
        if vuln.cve
        and vuln.slug == plugin
        and is_version_vulnerable(version, vuln.from_version, vuln.to_version)
    ]