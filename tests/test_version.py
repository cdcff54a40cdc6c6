import re

import pytest
import responses

from wpprobe.httpclient import HTTPClientManager
from wpprobe.version import (
    SemVer,
    check_latest_version,
    fetch_version_from_readme,
    get_plugin_version,
    is_version_vulnerable,
)

TAGS = "http://mock.test/tags"
TARGET = "http://mock.test"


@pytest.mark.parametrize(
    "current, expected, expected_latest",
    [
        ("v1.2.0", "1.2.0", True),
        ("v1.0.0", "1.2.0", False),
        ("invalid", "1.2.0", False),
    ],
)
def test_check_latest_version(current, expected, expected_latest):
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            TAGS,
            json=[{"name": "v1.0.0"}, {"name": "v1.2.0"}, {"name": "v1.1.0"}],
        )
        assert check_latest_version(current, TAGS) == (expected, expected_latest)


def test_check_latest_version_newer_than_latest():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, TAGS, json=[{"name": "v1.0.0"}])
        assert check_latest_version("v2.0.0", TAGS) == ("1.0.0", True)


def test_check_latest_version_not_json():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, TAGS, body="Not Found", status=404)
        assert check_latest_version("v1.0.0", TAGS) == ("unknown", False)


def test_check_latest_version_empty_list():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, TAGS, json=[])
        assert check_latest_version("v1.0.0", TAGS) == ("unknown", False)


def test_check_latest_version_no_valid_tags():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, TAGS, json=[{"name": "nightly"}, {"name": "latest"}])
        assert check_latest_version("v1.0.0", TAGS) == ("unknown", False)


def test_check_latest_version_connection_error():
    with responses.RequestsMock(assert_all_requests_are_fired=False):
        assert check_latest_version("v1.0.0", TAGS) == ("unknown", False)


@pytest.mark.parametrize(
    "plugin, expected",
    [("test-plugin", "1.0.0"), ("nonexistent", "unknown")],
)
def test_get_plugin_version(plugin, expected):
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.add(
            responses.GET,
            f"{TARGET}/wp-content/plugins/test-plugin/readme.txt",
            body="Stable tag: 1.0.0\n",
        )
        rsps.add(responses.GET, re.compile(r"http://mock\.test/.*"), status=404, body="nf")
        assert get_plugin_version(TARGET, plugin, 2, None) == expected


def test_fetch_version_from_readme():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.add(responses.GET, re.compile(r"http://mock\.test/.*"), body="Stable tag: 3.4.1")
        client = HTTPClientManager(5.0, None)
        assert fetch_version_from_readme(client, TARGET, "sample") == "3.4.1"


def test_fetch_version_from_readme_falls_back_to_later_names():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.add(
            responses.GET,
            f"{TARGET}/wp-content/plugins/demo/README.txt",
            body="=== Demo ===\nVersion: 2.5-beta\n",
        )
        rsps.add(responses.GET, re.compile(r"http://mock\.test/.*"), status=404, body="nf")
        client = HTTPClientManager(5.0, None)
        assert fetch_version_from_readme(client, TARGET, "demo") == "2.5-beta"


@pytest.mark.parametrize(
    "version, low, high, expected",
    [
        ("1.5.0", "1.0.0", "2.0.0", True),
        ("0.9.9", "1.0.0", "2.0.0", False),
        ("2.1.0", "1.0.0", "2.0.0", False),
        ("1.0.0", "1.0.0", "2.0.0", True),
        ("2.0.0", "1.0.0", "2.0.0", True),
        ("invalid", "1.0.0", "2.0.0", False),
        ("", "1.0.0", "2.0.0", False),
        ("1.0.0", "", "2.0.0", False),
        ("5.0", "0.0.0", "999999.0.0", True),
    ],
)
def test_is_version_vulnerable(version, low, high, expected):
    assert is_version_vulnerable(version, low, high) is expected


@pytest.mark.parametrize(
    "text, expected",
    [("v1.2", "1.2.0"), ("3", "3.0.0"), ("1.2.3-rc.1+build.5", "1.2.3-rc.1+build.5")],
)
def test_semver_parse_and_str(text, expected):
    assert str(SemVer.parse(text)) == expected


@pytest.mark.parametrize("text", ["", "invalid", "1.2.3.4", "1..2", "v"])
def test_semver_parse_invalid(text):
    with pytest.raises(ValueError):
        SemVer.parse(text)


@pytest.mark.parametrize(
    "lower, higher",
    [
        ("1.0.0-alpha", "1.0.0"),
        ("1.0.0-alpha", "1.0.0-alpha.1"),
        ("1.0.0-alpha.1", "1.0.0-beta"),
        ("1.0.0-1", "1.0.0-alpha"),
        ("1.0.0-2", "1.0.0-10"),
        ("1.9.9", "1.10.0"),
    ],
)
def test_semver_ordering(lower, higher):
    assert SemVer.parse(lower) < SemVer.parse(higher)
    assert SemVer.parse(higher).compare(SemVer.parse(lower)) == 1


def test_semver_ignores_metadata_in_equality():
    assert SemVer.parse("1.0.0+a") == SemVer.parse("v1.0.0+b")