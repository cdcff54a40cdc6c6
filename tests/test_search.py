import pytest

from wpprobe.search import (
    Tree,
    any_filter_set,
    build_tree,
    filter_all,
    group_by_plugin,
)
from wpprobe.wordfence import Vulnerability


@pytest.fixture(autouse=True)
def _plain_output(monkeypatch):
    monkeypatch.setenv("NO_COLOR", "1")


def make_vuln(cve, slug, severity, auth, title=""):
    return Vulnerability(
        cve=cve,
        slug=slug,
        severity=severity,
        cve_link="https://cve.org/CVERecord?id=" + cve,
        affected_version="*",
        auth_type=auth,
        cvss_score=5.0,
        title=title,
    )


def test_build_tree_structure():
    root = Tree("root")
    by_plugin = {"x": [make_vuln("CVE-9", "x", "low", "Auth")]}

    build_tree(root, by_plugin, True)
    out = str(root)

    assert "x  C:0 H:0 M:0 L:1 U:0" in out
    assert "Download: https://wordpress.org/plugins/x/" in out
    assert "CVE-9" in out


def test_build_tree_full_rendering():
    root = Tree("root")
    build_tree(root, {"x": [make_vuln("CVE-9", "x", "low", "Auth")]}, True)
    expected = "\n".join(
        [
            "root",
            "└── x  C:0 H:0 M:0 L:1 U:0",
            "    ├── Download: https://wordpress.org/plugins/x/",
            "    └── Low",
            "        └── CVE-9 - https://cve.org/CVERecord?id=CVE-9 [*] Auth:Auth CVSS:5.0",
        ]
    )
    assert root.render() == expected


def test_build_tree_without_details_omits_entries():
    root = Tree("root")
    build_tree(root, {"x": [make_vuln("CVE-9", "x", "low", "Auth")]}, False)
    out = str(root)
    assert "CVE-9" not in out
    assert out.endswith("Download: https://wordpress.org/plugins/x/")


def test_build_tree_sorts_plugins_and_severities():
    root = Tree("")
    by_plugin = {
        "zeta": [make_vuln("CVE-1", "zeta", "high", "Unauth")],
        "alpha": [
            make_vuln("CVE-3", "alpha", "low", "Auth"),
            make_vuln("CVE-2", "alpha", "critical", "Unauth"),
            make_vuln("CVE-1", "alpha", "critical", "Privileged"),
        ],
    }
    build_tree(root, by_plugin, True)
    out = root.render()
    assert out.index("alpha  C:2 H:0 M:0 L:1 U:0") < out.index("zeta  C:0 H:1 M:0 L:0 U:0")
    assert out.index("CVE-1 -") < out.index("CVE-2 -") < out.index("CVE-3 -")
    assert out.index("Critical") < out.index("Low")
    assert "Auth:Privileged" in out
    assert "Auth:Unauth" in out


def test_unrecognised_severity_counted_as_unknown():
    root = Tree("root")
    build_tree(root, {"p": [make_vuln("CVE-5", "p", "", "weird")]}, True)
    out = root.render()
    assert "p  C:0 H:0 M:0 L:0 U:1" in out
    # entries with an unrecognised severity are counted but not listed
    assert "CVE-5" not in out


def test_tree_render_simple():
    tree = Tree("root").child("a", "b")
    assert tree.render() == "root\n├── a\n└── b"


def test_tree_render_nested_and_flattened():
    tree = Tree("root")
    tree.child(Tree("inner").child(["one", "two"]), "tail")
    assert str(tree) == "\n".join(
        [
            "root",
            "├── inner",
            "│   ├── one",
            "│   └── two",
            "└── tail",
        ]
    )


@pytest.mark.parametrize(
    "filters, expected",
    [
        ((), False),
        (("", "", ""), False),
        (("", "x"), True),
        (("a",), True),
    ],
)
def test_any_filter_set(filters, expected):
    assert any_filter_set(*filters) is expected


@pytest.fixture
def sample():
    return [
        make_vuln("CVE-2024-0001", "contact-form", "High", "Unauth", "Unauthenticated SQLi"),
        make_vuln("CVE-2024-0002", "contact-form", "low", "Auth", "Stored XSS"),
        make_vuln("CVE-2023-1111", "gallery", "critical", "Privileged", "File Upload"),
    ]


def test_filter_all_no_filters_keeps_everything(sample):
    assert filter_all(sample, "", "", "", "", "") == sample


def test_filter_all_cve_substring_case_insensitive(sample):
    result = filter_all(sample, "cve-2024", "", "", "", "")
    assert [v.cve for v in result] == ["CVE-2024-0001", "CVE-2024-0002"]


def test_filter_all_slug_and_title(sample):
    assert [v.cve for v in filter_all(sample, "", "GALL", "", "", "")] == ["CVE-2023-1111"]
    assert [v.cve for v in filter_all(sample, "", "", "xss", "", "")] == ["CVE-2024-0002"]


def test_filter_all_severity_and_auth_exact(sample):
    assert [v.cve for v in filter_all(sample, "", "", "", "high", "")] == ["CVE-2024-0001"]
    assert filter_all(sample, "", "", "", "hig", "") == []
    assert [v.cve for v in filter_all(sample, "", "", "", "", "AUTH")] == ["CVE-2024-0002"]


def test_filter_all_combined(sample):
    result = filter_all(sample, "", "contact", "", "low", "auth")
    assert [v.cve for v in result] == ["CVE-2024-0002"]


def test_group_by_plugin(sample):
    groups = group_by_plugin(sample)
    assert list(groups) == ["contact-form", "gallery"]
    assert [v.cve for v in groups["contact-form"]] == ["CVE-2024-0001", "CVE-2024-0002"]
    assert [v.cve for v in groups["gallery"]] == ["CVE-2023-1111"]


def test_group_by_plugin_empty():
    assert group_by_plugin([]) == {}