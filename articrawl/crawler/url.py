"""URL normalisation: turns a raw query parameter into a :class:`NormalizedUrl`.

Callers may hand us a URL that was percent-encoded once or twice.  We decode
only while the value is not yet an absolute http(s) URL, so a singly-encoded
URL that legitimately contains ``%20`` is left alone.
"""

from __future__ import annotations

import ipaddress
import re
from urllib.parse import unquote, urlsplit

from articrawl.crawler.errors import InvalidUrl
from articrawl.crawler.models import NormalizedUrl

_ALLOWED_SCHEMES = ("http", "https")
_MAX_DECODE_PASSES = 2

_ESCAPE = re.compile(r"%[0-9A-Fa-f]{2}")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_ABSOLUTE = re.compile(r"^https?://", re.IGNORECASE)
_BAD_HOST_CHARS = re.compile(r"[\s\x00-\x1f\x7f]")

_BLOCKED_HOSTNAMES = ("localhost", "localhost.localdomain")


def _decode_once(value: str) -> str:
    if _BAD_ESCAPE.search(value):
        raise InvalidUrl(f"Malformed percent-encoding in URL: {value!r}")
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError as exc:
        raise InvalidUrl(f"URL escapes are not valid UTF-8: {value!r}") from exc


def decode_param(value: str) -> str:
    """Undo one or two layers of percent-encoding on *value*.

    Raises:
        InvalidUrl: On malformed escape sequences.
    """
    decoded = value.strip()
    for _ in range(_MAX_DECODE_PASSES):
        if _ABSOLUTE.match(decoded) or not _ESCAPE.search(decoded):
            break
        decoded = _decode_once(decoded).strip()
    if _BAD_ESCAPE.search(decoded):
        raise InvalidUrl(f"Malformed percent-encoding in URL: {decoded!r}")
    return decoded


def is_private_host(host: str) -> bool:
    """Return ``True`` for localhost names and loopback/private/link-local IPs.

    Only literal addresses are checked; no DNS lookups happen here.
    """
    host = host.strip("[]").lower()
    if host in _BLOCKED_HOSTNAMES or host.endswith(".localhost"):
        return True
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return False
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_unspecified
        or ip.is_reserved
    )


def validate_url(url: str, *, allow_private_hosts: bool = False) -> NormalizedUrl:
    """Check that *url* is an absolute http(s) URL and wrap it.

    Raises:
        InvalidUrl: If the scheme, host or port is unusable.
    """
    if not url:
        raise InvalidUrl("URL is empty")
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as exc:
        raise InvalidUrl(f"Cannot parse URL {url!r}: {exc}") from exc

    scheme = parts.scheme.lower()
    if scheme not in _ALLOWED_SCHEMES:
        raise InvalidUrl(f"Unsupported URL scheme {parts.scheme or '(none)'!r}: {url!r}")

    host = (parts.hostname or "").strip()
    if not host or _BAD_HOST_CHARS.search(parts.netloc):
        raise InvalidUrl(f"URL has no usable host: {url!r}")
    if port == 0:
        raise InvalidUrl(f"URL has an invalid port: {url!r}")
    if not allow_private_hosts and is_private_host(host):
        raise InvalidUrl(f"Refusing to crawl private or local host {host!r}")

    return NormalizedUrl(url=url, scheme=scheme, host=host.lower())


def normalize(raw: str, *, allow_private_hosts: bool = False) -> NormalizedUrl:
    """Decode and validate the raw ``url`` parameter.

    Pure and synchronous: no network access happens here.

    Raises:
        InvalidUrl: If the value cannot be decoded or is not an absolute
            http(s) URL on an allowed host.
    """
    if raw is None or not raw.strip():
        raise InvalidUrl("URL is empty")
    return validate_url(decode_param(raw), allow_private_hosts=allow_private_hosts)
