"""
Docker Event Source.

Streams the Docker Engine `/events` endpoint: one JSON object per line,
each decoded into an ObservedEvent. Works over the daemon's unix socket
or a TCP/HTTP address.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from urllib.parse import urlsplit

import httpx

from ..core.logging import get_logger
from ..errors import ConfigError, EventDecodeError, StreamError
from ..models import ObservedEvent

logger = get_logger(__name__)

DEFAULT_DOCKER_HOST = "unix:///var/run/docker.sock"

# Host header value for requests over a unix socket
UNIX_BASE_URL = "http://docker"


def decode_event(line: str) -> ObservedEvent:
    """
    Decode one line of the event stream.

    Raises:
        EventDecodeError: If the line is not a valid Docker event
    """
    try:
        data = json.loads(line)
        return ObservedEvent.from_dict(data)
    except ValueError as e:
        raise EventDecodeError(str(e), line=line) from e


def resolve_docker_host(docker_host: str) -> tuple[str, str | None]:
    """
    Translate a Docker host address into (base_url, unix_socket_path).

    Raises:
        ConfigError: If the scheme is not unix, tcp, http or https
    """
    parts = urlsplit(docker_host)
    if parts.scheme == "unix":
        if not parts.path:
            raise ConfigError(f"Missing socket path in docker host: {docker_host}")
        return UNIX_BASE_URL, parts.path
    if parts.scheme == "tcp":
        if not parts.netloc:
            raise ConfigError(f"Missing address in docker host: {docker_host}")
        return f"http://{parts.netloc}", None
    if parts.scheme in ("http", "https"):
        return docker_host.rstrip("/"), None
    raise ConfigError(f"Unsupported docker host: {docker_host}")


@dataclass
class DockerEventSource:
    """
    Reopenable source of Docker events.

    One HTTP client is kept for the process lifetime; each call to
    open_stream() issues a fresh streaming request on it.
    """

    docker_host: str = DEFAULT_DOCKER_HOST
    connect_timeout: float = 10.0

    _base_url: str = field(init=False, repr=False)
    _socket_path: str | None = field(init=False, default=None, repr=False)
    _client: httpx.AsyncClient | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self._base_url, self._socket_path = resolve_docker_host(self.docker_host)

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            transport = None
            if self._socket_path is not None:
                transport = httpx.AsyncHTTPTransport(uds=self._socket_path)
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                transport=transport,
                # No read timeout: the stream is idle whenever the daemon is quiet
                timeout=httpx.Timeout(
                    connect=self.connect_timeout,
                    read=None,
                    write=self.connect_timeout,
                    pool=self.connect_timeout,
                ),
                headers={"User-Agent": "dockwatch/1.0"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def open_stream(
        self, on_open: Callable[[], None] | None = None
    ) -> AsyncIterator[ObservedEvent]:
        """
        Open the event stream and yield events as they arrive.

        The iterator ends when the daemon closes the response.

        Args:
            on_open: Called once the daemon has accepted the request
                (HTTP 200 headers received), before any event arrives

        Raises:
            StreamError: If the request fails, the daemon answers with a
                non-200 status, or the connection breaks
            EventDecodeError: If an event line cannot be decoded
        """
        client = self._get_client()

        try:
            async with client.stream("GET", "/events") as response:
                if response.status_code != 200:
                    body = await response.aread()
                    raise StreamError(
                        f"Docker daemon returned HTTP {response.status_code}: "
                        f"{body.decode(errors='replace')[:200]}"
                    )

                logger.debug("Docker event stream opened (%s)", self.docker_host)
                if on_open is not None:
                    on_open()

                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    yield decode_event(line)
        except httpx.HTTPError as e:
            raise StreamError(f"Docker event stream failed: {e}") from e
