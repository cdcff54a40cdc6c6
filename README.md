# wpprobe

A library for checking WordPress plugins against a local copy of the
Wordfence vulnerability feed: reading a plugin's version from a site,
deciding whether that version is affected, browsing the database, and
writing the findings to CSV or JSON reports.

## Modules

- `wpprobe.httpclient`: `HTTPClientManager(timeout, headers)` issues GET
  requests with a User-Agent picked at random from a built-in list (unless
  one is given in `headers`, which are `"Name: value"` strings). TLS
  certificates are not verified, at most 10 redirects are followed, and
  bodies of 50 MiB or more are refused. `get(url)` returns the body as text
  or raises `HTTPError` (request failure, non-2xx status, empty body, body
  too large). `normalize_url` drops one trailing slash and adds `https://`
  when no scheme is given; `split_lines` returns stripped, non-empty lines.
- `wpprobe.version`: `SemVer.parse` (an optional leading `v`; missing minor
  and patch default to 0) with ordering that follows semantic-versioning
  rules. `is_version_vulnerable(version, from_version, to_version)` is true
  when the version lies in the inclusive range and false on any unparsable
  input. `get_plugin_version(target, plugin)` and
  `fetch_version_from_readme(client, target, plugin)` look for
  `Stable tag:` or `Version:` in `readme.txt`, `Readme.txt` or `README.txt`
  under `/wp-content/plugins/<plugin>/` and return `"unknown"` if none is
  found. `check_latest_version(current_version, tags_url)` reads a JSON list
  of release tags and returns the newest version and whether the current
  one is at least as new; failures give `("unknown", False)`.
- `wpprobe.wordfence`: `update_wordfence()` downloads the feed
  (`fetch_wordfence_data`), flattens it with `process_wordfence_data` into
  `Vulnerability` records (one per CVE, plugin and affected range; `*`
  bounds become `0.0.0` and `999999.0.0`; the auth type is taken from the
  CVSS vector or, failing that, the title) and stores it with
  `save_vulnerabilities_to_file`. `load_vulnerabilities(filename)` reads
  the stored copy once and caches it; `clear_cache()` resets the cache.
  `get_vulnerabilities_for_plugin(plugin, version)` returns the records
  with a CVE that match the slug and cover the version, or an empty list if
  the database cannot be read. Errors are raised as `WordfenceError`.
- `wpprobe.files`: `PluginEntry` results and two writers. `CSVWriter`
  truncates its file, writes a header, and orders rows by severity, then
  unauthenticated before authenticated. `JSONWriter` appends one JSON
  document per URL on its own line, grouping results by plugin, version,
  severity and auth type. Both are context managers. `get_writer` returns a
  `JSONWriter` for `*.json` names and a `CSVWriter` otherwise;
  `detect_output_format` returns `"csv"` or `"json"`. `read_lines` reads a
  text file into lines; `get_storage_path` returns a path inside the
  per-user `wpprobe` configuration directory, creating it if needed.
- `wpprobe.search`: `filter_all` (case-insensitive substring match on CVE,
  slug and title; exact, case-insensitive match on severity and auth type),
  `any_filter_set`, `group_by_plugin`, and `build_tree`, which adds one
  node per plugin to a `Tree` with severity counts, a download link and,
  optionally, the vulnerabilities listed by severity.
- `wpprobe.logger`: `Logger` writes timestamped `INFO`, `WARNING`, `ERROR`
  and `SUCCESS` lines (to stdout by default) and `print_banner` shows the
  version and whether it is the latest. Colours are used only on a
  terminal and when `NO_COLOR` is unset.
- `wpprobe.progress`: `ProgressManager`, a thread-safe progress bar on
  stderr with a fixed-width description (`pad_or_trunc`); it finishes the
  bar and exits with status 1 on SIGINT or SIGTERM.
- `wpprobe.selfupdate`: `get_latest_version` reads the latest release tag,
  and `auto_update` downloads the matching release binary, replaces the
  given executable with it and exits with status 0. Failures raise
  `UpdateError`.

## Examples

```python
from wpprobe.version import is_version_vulnerable

is_version_vulnerable("1.5.0", "1.0.0", "2.0.0")  # True
is_version_vulnerable("2.1.0", "1.0.0", "2.0.0")  # False
```

Look up known issues for a plugin once the database has been fetched with
`update_wordfence()`:

```python
from wpprobe.wordfence import get_vulnerabilities_for_plugin

for vuln in get_vulnerabilities_for_plugin("test-plugin", "1.5.0"):
    print(vuln.cve, vuln.severity, vuln.title)
```

Browse the database as a tree:

```python
from wpprobe.search import Tree, build_tree, filter_all, group_by_plugin
from wpprobe.wordfence import load_vulnerabilities

vulns = load_vulnerabilities("wordfence_vulnerabilities.json")
matches = filter_all(vulns, "", "contact", "", "high", "")

root = Tree("Results")
build_tree(root, group_by_plugin(matches), True)
print(root)
```

Write a report:

```python
from wpprobe.files import PluginEntry, get_writer

results = [
    PluginEntry(plugin="test-plugin", version="1.0", severity="high",
                auth_type="Unauth", cves=["CVE-2024-0001"], cvss_score=7.5),
]
with get_writer("report.json") as writer:
    writer.write_results("https://example.com", results)
```

## What it does not do

There is no command-line program and no scanner that discovers which
plugins a site has installed: the caller supplies the plugin slugs, and the
package reads their versions and matches them against the database.

## Tests

The test suite uses pytest and responses, available through the `test`
extra.