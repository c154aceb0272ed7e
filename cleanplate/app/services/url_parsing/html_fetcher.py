"""HTML fetching and URL validation utilities."""

import ipaddress
import json
import logging
import random
import re
import socket
import ssl
import threading
import time
from typing import Callable, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from cleanplate.app.core.config import Settings, get_settings
from cleanplate.app.services.url_parsing.constants import (
    BOT_CHALLENGE_MARKERS,
    JAVASCRIPT_REQUIRED_MARKER,
    JAVASCRIPT_REQUIRED_MAX_LENGTH,
)
from cleanplate.app.services.url_parsing.errors import (
    AccessDenied,
    BotChallengeDetected,
    ForbiddenHost,
    HttpError,
    InvalidUrl,
    JavaScriptRequired,
    NetworkError,
    SslVerificationFailed,
)
from cleanplate.app.services.url_parsing.parsing_utils import extract_domain

logger = logging.getLogger(__name__)

Resolver = Callable[[str], List[str]]

_META_CHARSET_RE = re.compile(rb"""<meta[^>]+charset=["']?([A-Za-z0-9_\-:.]+)""", re.I)


def is_forbidden_ip(value: str) -> bool:
    try:
        ip = ipaddress.ip_address(value)
    except ValueError:
        return False
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_unspecified
        or ip.is_multicast
    )


def is_private_host(host: str, blocked_hosts: Optional[List[str]] = None) -> bool:
    """Check if a host is private/localhost or explicitly blocked."""
    hostname = host.strip().lower()
    if hostname.startswith("["):
        hostname = hostname[1:].split("]")[0]
    elif hostname.count(":") == 1:
        hostname = hostname.split(":")[0]
    blocked = {h.lower() for h in (blocked_hosts or ["localhost"])}
    if hostname in blocked:
        return True
    return is_forbidden_ip(hostname)


def resolve_host(host: str) -> List[str]:
    """Return every address the host name resolves to."""
    infos = socket.getaddrinfo(host, None)
    return sorted({info[4][0] for info in infos})


def validate_url(
    url: str,
    settings: Optional[Settings] = None,
    resolver: Optional[Resolver] = None,
) -> str:
    """Reject URLs that are malformed or that point at internal addresses.

    Runs before any request is made. Host names are resolved and every
    resulting address is checked, so a public name that points at a private
    network is refused as well. Returns the stripped URL.
    """
    settings = settings or get_settings()
    resolver = resolver or resolve_host
    url = (url or "").strip()
    if not url:
        raise InvalidUrl("URL is required")
    if len(url) > settings.max_url_length:
        raise InvalidUrl(f"URL is longer than {settings.max_url_length} characters")

    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"}:
        raise InvalidUrl("URL must start with http or https")
    host = parsed.hostname
    if not parsed.netloc or not host:
        raise InvalidUrl("URL has no host")

    if is_private_host(host, settings.blocked_hosts):
        raise ForbiddenHost(f"Host is blocked: {host}")

    try:
        ipaddress.ip_address(host)
        return url
    except ValueError:
        pass

    try:
        addresses = resolver(host)
    except (socket.gaierror, UnicodeError) as exc:
        # Unresolvable names fail later as a network error.
        logger.debug("Could not resolve %s during validation: %s", host, exc)
        return url

    for address in addresses:
        if is_forbidden_ip(address):
            logger.warning("Refusing %s: %s resolves to %s", url, host, address)
            raise ForbiddenHost(f"Host {host} resolves to a private address")
    return url


class ScraperSession:
    """State shared by consecutive fetches that should look like one browser.

    Holds the user agent (picked once) and the time of the last request to
    each domain. Waits for the same domain are serialized, so threads sharing
    a session still space their requests by the minimum delay.
    """

    def __init__(
        self,
        user_agents: Optional[List[str]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ):
        pool = user_agents or get_settings().scraper_user_agents
        self.user_agent = (rng or random).choice(pool)
        self.last_request: Dict[str, float] = {}
        self.clock = clock
        self.sleep = sleep
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _domain_lock(self, domain: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(domain, threading.Lock())

    def wait_for_domain(self, domain: str, min_delay: float) -> float:
        """Block until ``min_delay`` has passed since the last request to ``domain``.

        Returns the number of seconds slept.
        """
        waited = 0.0
        with self._domain_lock(domain):
            last = self.last_request.get(domain)
            if last is not None:
                remaining = min_delay - (self.clock() - last)
                if remaining > 0:
                    logger.debug("Rate limiting %s: sleeping %.2fs", domain, remaining)
                    self.sleep(remaining)
                    waited = remaining
            self.last_request[domain] = self.clock()
        return waited


def _is_certificate_error(exc: BaseException) -> bool:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ssl.SSLCertVerificationError):
            return True
        text = str(current)
        if "CERTIFICATE_VERIFY_FAILED" in text or "certificate verify failed" in text:
            return True
        current = current.__cause__ or current.__context__
    return False


def _seed_cookies(raw: Optional[str]) -> Dict[str, str]:
    if not raw:
        return {}
    try:
        cookies = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("SCRAPER_COOKIES is not valid JSON; ignoring")
        return {}
    if not isinstance(cookies, dict):
        logger.warning("SCRAPER_COOKIES must be a JSON object; ignoring")
        return {}
    return {str(k): str(v) for k, v in cookies.items()}


def _charset_from_content_type(content_type: str) -> Optional[str]:
    if "charset=" not in content_type.lower():
        return None
    try:
        value = re.split(r"charset=", content_type, flags=re.I)[1]
        return value.split(";")[0].strip().strip("\"'") or None
    except IndexError:
        return None


def decode_body(content: bytes, content_type: str = "") -> str:
    """Decode a response body: declared charset, then <meta charset>, then utf-8."""
    encoding = _charset_from_content_type(content_type)
    if encoding:
        try:
            return content.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            logger.debug("Declared charset %s failed, sniffing document", encoding)

    match = _META_CHARSET_RE.search(content[:4096])
    if match:
        detected = match.group(1).decode("ascii", errors="ignore").lower()
        if detected and detected != "utf-8":
            try:
                return content.decode(detected)
            except (UnicodeDecodeError, LookupError):
                pass
    return content.decode("utf-8", errors="replace")


def classify_body(html: str) -> None:
    """Raise when a successful response is really a bot wall or a JS shell."""
    lowered = html.lower()
    for marker in BOT_CHALLENGE_MARKERS:
        if marker.lower() in lowered:
            raise BotChallengeDetected("Website is using bot challenge protection")
    if JAVASCRIPT_REQUIRED_MARKER.lower() in lowered and len(html) < JAVASCRIPT_REQUIRED_MAX_LENGTH:
        raise JavaScriptRequired("This page requires JavaScript rendering")


class HtmlFetcher:
    """Fetches recipe pages with browser-like headers and per-domain pacing."""

    def __init__(
        self,
        session: Optional[ScraperSession] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.session = session or ScraperSession(self.settings.scraper_user_agents)
        self.transport = transport

    def build_headers(self) -> Dict[str, str]:
        return {**self.settings.scraper_headers, "User-Agent": self.session.user_agent}

    def fetch(self, url: str) -> str:
        settings = self.settings
        domain = extract_domain(url)
        self.session.wait_for_domain(domain, settings.scraper_min_delay)

        logger.info("Fetching %s", url)
        # httpx timeouts apply per operation; the deadline bounds the whole fetch.
        deadline = self.session.clock() + settings.scraper_timeout
        content = b""
        # The client owns the cookie jar for this one request and is closed on every path.
        try:
            with httpx.Client(
                headers=self.build_headers(),
                cookies=_seed_cookies(settings.scraper_cookies),
                follow_redirects=True,
                max_redirects=settings.scraper_max_redirects,
                timeout=settings.scraper_timeout,
                verify=settings.scraper_ssl_verify,
                transport=self.transport,
            ) as client:
                with client.stream("GET", url) as response:
                    status = response.status_code
                    content_type = response.headers.get("content-type", "")
                    if status < 400:
                        content = self._read_body(response, deadline)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"Request timed out after {settings.scraper_timeout}s") from exc
        except httpx.TooManyRedirects as exc:
            raise NetworkError(
                f"Too many redirects (limit {settings.scraper_max_redirects})"
            ) from exc
        except httpx.RequestError as exc:
            if _is_certificate_error(exc):
                raise SslVerificationFailed(f"SSL certificate verification failed: {exc}") from exc
            raise NetworkError(f"Could not fetch URL: {exc}") from exc

        if status in (403, 429):
            raise AccessDenied(status)
        if status >= 400:
            raise HttpError(status)

        html = decode_body(content, content_type)
        classify_body(html)
        logger.info("Fetched %s (%d bytes, HTTP %d)", url, len(content), status)
        return html

    def _read_body(self, response: httpx.Response, deadline: float) -> bytes:
        chunks: List[bytes] = []
        for chunk in response.iter_bytes():
            chunks.append(chunk)
            if self.session.clock() > deadline:
                logger.warning("Aborting %s: body still arriving at the deadline", response.url)
                raise NetworkError(
                    f"Request timed out after {self.settings.scraper_timeout}s"
                )
        return b"".join(chunks)
