"""Checking for and installing new releases of the wpprobe executable."""

from __future__ import annotations

import os
import platform
import sys
from typing import Callable

import requests

from wpprobe.logger import DEFAULT_LOGGER

GITHUB_REPO = "Chocapikk/wpprobe"
VERSION = "dev"

_REQUEST_TIMEOUT = 30

_OS_NAMES = {
    "linux": "linux",
    "darwin": "darwin",
    "win32": "windows",
    "cygwin": "windows",
    "freebsd": "freebsd",
    "openbsd": "openbsd",
    "netbsd": "netbsd",
}

_ARCH_NAMES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv7l": "arm",
    "armv6l": "arm",
}


class UpdateError(Exception):
    """Raised when the latest release cannot be found or installed."""


def github_latest_release_url() -> str:
    """Return the API address describing the latest release."""
    return f"https://api.github.com/repos/{GITHUB_REPO}/releases/latest"


def github_download_url(version: str, os_name: str, arch: str) -> str:
    """Return the download address of the release binary for a platform."""
    ext = ".exe" if os_name == "windows" else ""
    return (
        f"https://github.com/{GITHUB_REPO}/releases/download/"
        f"{version}/wpprobe_{version}_{os_name}_{arch}{ext}"
    )


def get_latest_version(release_url: str | None = None) -> str:
    """Return the tag name of the latest release."""
    url = release_url or github_latest_release_url()
    DEFAULT_LOGGER.info("Fetching latest WPProbe version...")
    try:
        resp = requests.get(url, timeout=_REQUEST_TIMEOUT)
    except requests.RequestException as exc:
        DEFAULT_LOGGER.error(f"Failed to fetch latest release: {exc}")
        raise UpdateError(f"failed to fetch latest release: {exc}") from exc

    if resp.status_code != 200:
        DEFAULT_LOGGER.error(f"GitHub API error: {resp.status_code}")
        raise UpdateError(f"GitHub API error: {resp.status_code}")

    try:
        result = resp.json()
    except ValueError as exc:
        DEFAULT_LOGGER.error(f"Failed to parse JSON response: {exc}")
        raise UpdateError(f"failed to parse JSON response: {exc}") from exc

    version = result.get("tag_name") if isinstance(result, dict) else None
    if not isinstance(version, str) or not version:
        DEFAULT_LOGGER.error("Failed to extract latest version from GitHub API")
        raise UpdateError("invalid version format")

    DEFAULT_LOGGER.success(f"Latest WPProbe version found: {version}")
    return version


def auto_update(
    current_version: str,
    release_url: str | None = None,
    download_url: Callable[[str, str, str], str] | None = None,
    executable: str | None = None,
) -> None:
    """Replace ``executable`` with the latest release and exit with status 0.

    Returns normally only when ``current_version`` is already the latest.
    """
    DEFAULT_LOGGER.info("Checking for WPProbe updates...")
    latest = get_latest_version(release_url)

    if current_version == latest:
        DEFAULT_LOGGER.info(f"WPProbe is already up-to-date (version {current_version})")
        return

    make_url = download_url or github_download_url
    update_url = make_url(latest, detect_os(), detect_arch())

    DEFAULT_LOGGER.info(f"Downloading WPProbe update from: {update_url}")
    try:
        resp = requests.get(update_url, timeout=_REQUEST_TIMEOUT)
    except requests.RequestException as exc:
        DEFAULT_LOGGER.error(f"Failed to download update: {exc}")
        raise UpdateError(f"failed to download update: {exc}") from exc

    if resp.status_code != 200:
        DEFAULT_LOGGER.error(f"Update not found: {update_url}")
        raise UpdateError(f"update not found at {update_url}")

    body = resp.content
    current_exe = os.path.abspath(executable or sys.argv[0])

    DEFAULT_LOGGER.info(f"Replacing current binary: {current_exe}")
    tmp_file = current_exe + ".tmp"
    try:
        with open(tmp_file, "wb") as handle:
            handle.write(body)
        os.chmod(tmp_file, 0o755)
    except OSError as exc:
        DEFAULT_LOGGER.error(f"Failed to write temp file: {exc}")
        raise UpdateError(f"failed to write temp file: {exc}") from exc

    if detect_os() == "windows":
        try:
            os.remove(current_exe)
        except OSError as exc:
            DEFAULT_LOGGER.warning(
                f"Failed removing current file (Windows lock issues?). {exc}"
            )

    try:
        os.replace(tmp_file, current_exe)
    except OSError as exc:
        DEFAULT_LOGGER.error(f"Failed to replace old binary: {exc}")
        raise UpdateError(f"failed to replace old binary: {exc}") from exc

    DEFAULT_LOGGER.success("Update successful! Restart WPProbe to use the new version.")
    raise SystemExit(0)


def detect_os() -> str:
    """Return the operating system name used in release file names."""
    return _OS_NAMES.get(sys.platform, sys.platform)


def detect_arch() -> str:
    """Return the CPU architecture name used in release file names."""
    machine = platform.machine()
    return _ARCH_NAMES.get(machine.lower(), machine.lower())