"""A small HTTP GET client with redirect, size and status checks."""

from __future__ import annotations

import random
import warnings
from urllib.parse import urljoin

import requests
from requests.structures import CaseInsensitiveDict

MAX_RESPONSE_SIZE = 50 * 1024 * 1024
MAX_REDIRECTS = 10
_CHUNK_SIZE = 64 * 1024

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Mobile/15E148 Safari/604.1",
)


class HTTPError(Exception):
    """Raised when a GET request does not yield a usable body."""


def _parse_header(raw: str) -> tuple[str, str] | None:
    key, sep, value = raw.partition(":")
    if not sep:
        return None
    return key.strip(), value.strip()


class HTTPClientManager:
    """Issues GET requests with a fixed random User-Agent and extra headers.

    TLS certificates are not verified and connections are not kept alive.
    ``timeout`` is in seconds; ``headers`` are "Name: value" strings.
    """

    def __init__(self, timeout: float = 10.0, headers=None) -> None:
        self.timeout = timeout
        self.headers = list(headers or [])
        self.user_agent = random.choice(USER_AGENTS)

    def _build_headers(self) -> CaseInsensitiveDict:
        result: CaseInsensitiveDict = CaseInsensitiveDict()
        parsed = [p for p in map(_parse_header, self.headers) if p is not None]

        agents = [value for key, value in parsed if key.lower() == "user-agent"]
        result["User-Agent"] = ", ".join(agents) if agents else self.user_agent

        for key, value in parsed:
            if key.lower() == "user-agent":
                continue
            result[key] = f"{result[key]}, {value}" if key in result else value
        result["Connection"] = "close"
        return result

    def get(self, url: str) -> str:
        """Fetch ``url`` and return its body as text; raise HTTPError otherwise."""
        with requests.Session() as session, warnings.catch_warnings():
            warnings.filterwarnings("ignore", message="Unverified HTTPS request")
            session.verify = False
            session.max_redirects = MAX_REDIRECTS

            try:
                resp = session.get(
                    url, headers=self._build_headers(), timeout=self.timeout, stream=True
                )
            except (
                requests.exceptions.MissingSchema,
                requests.exceptions.InvalidSchema,
                requests.exceptions.InvalidURL,
            ) as exc:
                raise HTTPError(f"failed to create request: {exc}") from exc
            except requests.RequestException as exc:
                raise HTTPError(f"request failed: {exc}") from exc

            try:
                redirects = 0
                while 300 <= resp.status_code < 400:
                    if redirects >= MAX_REDIRECTS:
                        raise HTTPError("stopped after max redirects")
                    location = resp.headers.get("Location")
                    if not location:
                        raise HTTPError("failed to get redirect location")
                    target = urljoin(resp.url, location)
                    resp.close()
                    try:
                        resp = session.get(target, timeout=self.timeout, stream=True)
                    except requests.RequestException as exc:
                        raise HTTPError(f"redirect request failed: {exc}") from exc
                    redirects += 1

                if not 200 <= resp.status_code < 300:
                    raise HTTPError(
                        f"non-success status code: {resp.status_code} {resp.reason}".rstrip()
                    )

                data = self._read_limited(resp)
            finally:
                resp.close()

        if not data:
            raise HTTPError("empty response")
        if len(data) >= MAX_RESPONSE_SIZE:
            raise HTTPError("response too large")
        return data.decode("utf-8", errors="replace")

    @staticmethod
    def _read_limited(resp: requests.Response) -> bytes:
        data = bytearray()
        try:
            for chunk in resp.iter_content(_CHUNK_SIZE):
                data += chunk
                if len(data) >= MAX_RESPONSE_SIZE:
                    del data[MAX_RESPONSE_SIZE:]
                    break
        except requests.RequestException as exc:
            raise HTTPError(f"failed to read response body: {exc}") from exc
        return bytes(data)


def normalize_url(url: str) -> str:
    """Drop one trailing slash and default to https:// when no scheme is given."""
    if url.endswith("/"):
        url = url[:-1]
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url


def split_lines(data) -> list[str]:
    """Split bytes or text into stripped, non-empty lines."""
    text = data.decode("utf-8", errors="replace") if isinstance(data, (bytes, bytearray)) else data
    return [stripped for line in text.split("\n") if (stripped := line.strip())]