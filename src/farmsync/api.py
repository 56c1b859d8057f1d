from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional
from urllib.parse import parse_qs, quote, urlencode, urljoin, urlparse

import requests
from requests.structures import CaseInsensitiveDict

from .env_loader import load_env_files

_logger = logging.getLogger(__name__)

# Ensure .env is loaded for library use as well (e.g., scripts importing FarmOSClient)
load_env_files(quiet=True)

LOGIN_PATH = "user/login"
LOGIN_FORM_ID = "user_login"
TOKEN_PATH = "restws/session/token"
CSRF_HEADER = "X-CSRF-Token"

AREA_VOCABULARY = "farm_areas"

REDIRECT_MODES = ("strict", "lenient", "none")


# ----------------------------------------------------------------------
# Configuration dataclass
# ----------------------------------------------------------------------
@dataclass
class FarmOSConfig:
    """Connection settings for a farmOS instance."""

    # Hostname without protocol, e.g. "farm.example.com"
    hostname: str = ""
    username: str = ""
    password: str = ""

    # Scheme used when assembling request URLs
    scheme: str = "http"

    @classmethod
    def from_env(cls) -> FarmOSConfig:
        """Load configuration from environment variables."""
        return cls(
            hostname=os.getenv("FARMOS_HOSTNAME", ""),
            username=os.getenv("FARMOS_USERNAME", ""),
            password=os.getenv("FARMOS_PASSWORD", ""),
            scheme=os.getenv("FARMOS_SCHEME", "http"),
        )

    def missing(self) -> List[str]:
        """Return the names of credential fields that are empty."""
        return [
            k
            for k, v in {
                "hostname": self.hostname,
                "username": self.username,
                "password": self.password,
            }.items()
            if not v
        ]


def build_url(hostname: str, path: str, scheme: str = "http") -> str:
    """Return an absolute URL for ``path`` on ``hostname``.

    Any protocol prefix or copy of the hostname already present in ``path`` is
    removed first, so passing a full URL and a bare path give the same result.
    """
    for prefix in ("http://", "https://"):
        path = path.replace(prefix, "")
    if hostname:
        path = path.replace(hostname, "")
    path = path.strip("/ \t\r\n")
    return f"{scheme}://{hostname}/{path}"


def encode_filters(filters: Optional[Mapping[str, Any]]) -> str:
    """Encode filters as an RFC 3986 query string (spaces as %20, slashes as %2F)."""
    if not filters:
        return ""
    return urlencode(list(filters.items()), safe="", quote_via=quote)


# ----------------------------------------------------------------------
# Main API client
# ----------------------------------------------------------------------
class FarmOSClient:
    """farmOS 1.x restws client: session login plus taxonomy/area retrieval."""

    def __init__(
        self,
        cfg: Optional[FarmOSConfig] = None,
        *,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cfg = cfg or FarmOSConfig.from_env()
        self.session = session or requests.Session()
        self.log = logger or _logger
        self.token: str = ""
        # Why the most recent fetch came back empty; "" when it succeeded
        self.last_error: str = ""

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    # --------------------------- Session ------------------------------

    def reset_session(self) -> None:
        """Forget cookies and the CSRF token."""
        self.session.cookies.clear()
        self.token = ""

    def authenticate(self) -> bool:
        """Log in and fetch a CSRF token. Returns True iff a token was obtained."""
        missing = self.cfg.missing()
        if missing:
            self.log.warning("farmOS credentials incomplete, missing: %s", ", ".join(missing))
            return False

        self.reset_session()

        self.log.info("Logging in to farmOS at %s as %s", self.cfg.hostname, self.cfg.username)
        data = {
            "name": self.cfg.username,
            "pass": self.cfg.password,
            "form_id": LOGIN_FORM_ID,
        }
        r = self.request("POST", LOGIN_PATH, data=data)
        if r is None or r.status_code != 200:
            self.log.warning(
                "farmOS login failed (status=%s)", getattr(r, "status_code", None)
            )
            return False

        r = self.request("GET", TOKEN_PATH)
        if r is not None and r.status_code == 200:
            self.token = (r.text or "").strip()

        if not self.token:
            self.log.warning(
                "farmOS session token request failed (status=%s)",
                getattr(r, "status_code", None),
            )
            return False

        self.log.debug("Obtained farmOS session token")
        return True

    # --------------------------- Records ------------------------------

    def get_records(
        self, entity_type: str, filters: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Return the ``list`` of one page of ``entity_type`` records."""
        self.last_error = ""
        return _records_from_envelope(self._get_envelope(entity_type, filters))

    def get_vocabulary_id(self, machine_name: str) -> Optional[int]:
        """Return the numeric ID of a vocabulary, or None if it is not found."""
        for vocab in self.get_records("taxonomy_vocabulary"):
            if not isinstance(vocab, dict):
                continue
            if vocab.get("machine_name") != machine_name:
                continue
            try:
                return int(vocab["vid"])
            except (KeyError, TypeError, ValueError):
                self.log.warning("Vocabulary %s has no usable vid: %r", machine_name, vocab)
                return None
        return None

    def get_areas(self, filters: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        """Return one page of area terms."""
        area_filters = self._area_filters(filters)
        if area_filters is None:
            return []
        return self.get_records("taxonomy_term", area_filters)

    def page_count(self, entity_type: str, filters: Optional[Mapping[str, Any]] = None) -> int:
        """Return the number of pages the list endpoint reports, or 0 if unknown."""
        self.last_error = ""
        return _pages_from_envelope(self._get_envelope(entity_type, filters))

    def iter_records(
        self, entity_type: str, filters: Optional[Mapping[str, Any]] = None
    ) -> Iterator[Dict[str, Any]]:
        """Yield records across every page of ``entity_type``.

        If any page cannot be fetched, ``last_error`` says so once the
        iterator is exhausted.
        """
        self.last_error = ""
        yield from self._iter_pages(entity_type, filters)

    def iter_areas(self, filters: Optional[Mapping[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        """Yield area terms across every page."""
        area_filters = self._area_filters(filters)
        if area_filters is None:
            return
        yield from self._iter_pages("taxonomy_term", area_filters)

    # --------------------------- Internal helpers --------------------

    def _iter_pages(
        self, entity_type: str, filters: Optional[Mapping[str, Any]]
    ) -> Iterator[Dict[str, Any]]:
        # The unpaged list is page 0; its envelope also says how many pages follow.
        base = {k: v for k, v in (filters or {}).items() if k != "page"}
        envelope = self._get_envelope(entity_type, base)
        pages = _pages_from_envelope(envelope)
        yield from _records_from_envelope(envelope)

        if pages > 1:
            self.log.debug("Fetching %d more page(s) of %s", pages - 1, entity_type)
        for page in range(1, pages):
            yield from _records_from_envelope(
                self._get_envelope(entity_type, {**base, "page": page})
            )

    def _area_filters(self, filters: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
        vid = self.get_vocabulary_id(AREA_VOCABULARY)
        if vid is None:
            self.log.warning("Vocabulary %s not found on %s", AREA_VOCABULARY, self.cfg.hostname)
            self.last_error = self.last_error or f"vocabulary {AREA_VOCABULARY} not found"
            return None
        return {**(filters or {}), "vocabulary": vid}

    def _get_envelope(
        self, entity_type: str, filters: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        path = f"{entity_type}.json"
        r = self.request("GET", path, params=encode_filters(filters))
        if r is None:
            self.last_error = f"no response from {path}"
            return {}
        if r.status_code != 200:
            self.last_error = f"HTTP {r.status_code} from {path}"
            return {}
        try:
            envelope = r.json()
        except ValueError:
            self.log.warning("Could not decode JSON from %s", r.url)
            return {}
        if not isinstance(envelope, dict):
            return {}
        return envelope

    # --------------------------- HTTP wrapper ------------------------

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Any] = None,
        data: Optional[Any] = None,
        headers: Optional[Mapping[str, str]] = None,
        cookies: Optional[Any] = None,
        redirects: str = "strict",
    ) -> Optional[requests.Response]:
        """Send a request to the farmOS host.

        Returns the response (including 4xx/5xx ones) or None when the
        transport failed without producing a response.
        """
        if redirects not in REDIRECT_MODES:
            raise ValueError(f"Unsupported redirect mode: {redirects!r}")

        url = build_url(self.cfg.hostname, path, self.cfg.scheme)
        hdrs: CaseInsensitiveDict = CaseInsensitiveDict(headers or {})
        if self.token and CSRF_HEADER not in hdrs:
            hdrs[CSRF_HEADER] = self.token

        try:
            r = self.session.request(
                method,
                url,
                params=params or None,
                data=data,
                headers=hdrs,
                cookies=cookies,
                allow_redirects=(redirects == "lenient"),
            )
            if redirects == "strict":
                r = self._follow_strict(r, method, data, hdrs, cookies)
        except requests.RequestException as e:
            if e.response is not None:
                self.log.warning("HTTP %s error for %s: %s", e.response.status_code, url, e)
                return e.response
            self.log.warning("Request to %s failed: %s", url, e)
            return None

        self.log.debug("%s %s -> %s", method, url, r.status_code)
        return r

    def _follow_strict(
        self,
        r: requests.Response,
        method: str,
        data: Optional[Any],
        headers: CaseInsensitiveDict,
        cookies: Optional[Any],
    ) -> requests.Response:
        """Follow redirects, re-sending method and body on 301/302/307/308.

        A 303 always continues as a bodiless GET. The CSRF token is not sent
        to hosts other than the configured one.
        """
        hops = 0
        while r.is_redirect:
            hops += 1
            if hops > self.session.max_redirects:
                raise requests.TooManyRedirects(
                    f"Exceeded {self.session.max_redirects} redirects.", response=r
                )
            location = urljoin(r.url, r.headers["location"])
            if r.status_code == 303 and method.upper() != "HEAD":
                method, data = "GET", None
            if urlparse(location).netloc != self.cfg.hostname and CSRF_HEADER in headers:
                headers = CaseInsensitiveDict(headers)
                del headers[CSRF_HEADER]
            self.log.debug("Redirect %s -> %s %s", r.status_code, method, location)
            r = self.session.request(
                method,
                location,
                data=data,
                headers=headers,
                cookies=cookies,
                allow_redirects=False,
            )
        return r


def _records_from_envelope(envelope: Mapping[str, Any]) -> List[Dict[str, Any]]:
    records = envelope.get("list")
    if not isinstance(records, list):
        return []
    return records


def _pages_from_envelope(envelope: Mapping[str, Any]) -> int:
    last = envelope.get("last")
    if not last:
        return 0
    query = parse_qs(urlparse(str(last)).query)
    try:
        last_page = int(query.get("page", ["0"])[0])
    except ValueError:
        _logger.warning("Unparseable page in last URL: %s", last)
        return 0
    return last_page + 1
