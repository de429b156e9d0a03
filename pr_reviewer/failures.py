"""
Failure types raised at the boundary of every external call.

Each outbound call (GitHub, Ollama, the reviewer server itself) converts the
exception it catches into exactly one of the Failure subclasses below, so
downstream code matches on a type instead of probing loosely-shaped errors.
"""

import asyncio
import errno
import socket
from typing import Iterator, Optional
from urllib.parse import urlparse

import httpx

LOCAL_HOSTS = frozenset({"127.0.0.1", "localhost", "::1", "0.0.0.0"})

_REFUSED_MARKERS = ("connection refused", "all connection attempts failed", "connect call failed")
_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
    "no address associated with hostname",
)
_RESET_MARKERS = ("connection reset", "server disconnected", "connection aborted")


class Failure(Exception):
    """Base class for a failure of an external call."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UpstreamStatusFailure(Failure):
    """The remote service answered with a non-success HTTP status."""

    def __init__(self, status_code: int, upstream_message: str = "", url: Optional[str] = None):
        super().__init__(f"HTTP {status_code}: {upstream_message}" if upstream_message else f"HTTP {status_code}")
        self.status_code = status_code
        self.upstream_message = upstream_message
        self.url = url


class ConnectionRefusedFailure(Failure):
    """Nothing was listening on the target host and port."""

    def __init__(self, message: str, host: Optional[str] = None, port: Optional[int] = None):
        super().__init__(message)
        self.host = host
        self.port = port

    @property
    def is_local(self) -> bool:
        return self.host in LOCAL_HOSTS


class NetworkFailure(Failure):
    """DNS resolution failed or the connection was reset."""


class TimeoutFailure(Failure):
    """The call did not complete within its timeout."""


class UnexpectedFailure(Failure):
    """Anything that does not fit the other failure types."""


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _request_url(exc: BaseException) -> Optional[httpx.URL]:
    if isinstance(exc, httpx.RequestError):
        try:
            return exc.request.url
        except RuntimeError:
            return None
    return None


def _host_and_port(url) -> tuple[Optional[str], Optional[int]]:
    if url is None:
        return None, None
    if isinstance(url, httpx.URL):
        host, port, scheme = url.host, url.port, url.scheme
    else:
        parsed = urlparse(str(url))
        host, port, scheme = parsed.hostname, parsed.port, parsed.scheme
    if port is None and scheme:
        port = 443 if scheme == "https" else 80
    return host, port


def _upstream_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip()[:500]
    if isinstance(data, dict):
        return str(data.get("message") or data.get("error") or "")
    return ""


def _is_refused(exc: BaseException) -> bool:
    if isinstance(exc, ConnectionRefusedError):
        return True
    if isinstance(exc, OSError) and exc.errno == errno.ECONNREFUSED:
        return True
    text = str(exc).lower()
    return any(marker in text for marker in _REFUSED_MARKERS)


def _is_dns(exc: BaseException) -> bool:
    if isinstance(exc, socket.gaierror):
        return True
    text = str(exc).lower()
    return any(marker in text for marker in _DNS_MARKERS)


def _is_reset(exc: BaseException) -> bool:
    if isinstance(exc, (ConnectionResetError, ConnectionAbortedError)):
        return True
    if isinstance(exc, (httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError)):
        return True
    text = str(exc).lower()
    return any(marker in text for marker in _RESET_MARKERS)


def failure_from_exception(exc: BaseException, url=None) -> Failure:
    """
    Convert an exception caught around an external call into a Failure.

    Args:
        exc: The caught exception
        url: Target URL, used when the exception does not carry its request

    Returns:
        The matching Failure subclass; an existing Failure is returned as-is
    """
    if isinstance(exc, Failure):
        return exc

    message = str(exc) or type(exc).__name__

    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        return UpstreamStatusFailure(
            response.status_code,
            _upstream_message(response),
            url=str(exc.request.url),
        )

    target = _request_url(exc) or url
    chain = list(_exception_chain(exc))

    if isinstance(exc, (httpx.TimeoutException, TimeoutError, asyncio.TimeoutError)):
        return TimeoutFailure(message)

    if any(_is_dns(link) for link in chain):
        return NetworkFailure(message)

    if any(_is_refused(link) for link in chain):
        host, port = _host_and_port(target)
        return ConnectionRefusedFailure(message, host=host, port=port)

    if any(_is_reset(link) for link in chain):
        return NetworkFailure(message)

    if "timeout" in message.lower() or "timed out" in message.lower():
        return TimeoutFailure(message)

    return UnexpectedFailure(message)
