"""HTTP retrieval of repository index documents."""

from __future__ import annotations

import base64
import time
from dataclasses import dataclass, field
from typing import Callable, Dict

import httpx
import structlog

from ..config import RepositoryConfig

FETCH_TIMEOUT = "timeout"
FETCH_NETWORK = "network"
FETCH_AUTH = "auth"
FETCH_STATUS = "status"


class FetchError(Exception):
    """Raised when an index document could not be retrieved."""

    def __init__(self, kind: str, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


@dataclass(slots=True)
class FetchResponse:
    """Standardised response wrapper."""

    url: str
    status_code: int
    content: bytes
    headers: Dict[str, str] = field(default_factory=dict)


class Fetcher:
    """Retrieve index documents over HTTP(S) with per-repository auth."""

    def __init__(
        self,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.timeout = timeout
        self._clock = clock
        self.logger = logger or structlog.get_logger("helm_repo_exporter.fetcher")
        self._client = client or httpx.Client(follow_redirects=True, timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def fetch(self, repository: RepositoryConfig, timeout: float | None = None) -> bytes:
        return self.request(repository, timeout).content

    def request(self, repository: RepositoryConfig, timeout: float | None = None) -> FetchResponse:
        """GET the index document; ``timeout`` bounds the whole request, body included."""

        timeout = timeout or self.timeout
        deadline = self._clock() + timeout
        headers = self._build_headers(repository)
        try:
            with self._client.stream(
                "GET", repository.url, headers=headers, timeout=timeout
            ) as response:
                if response.status_code != httpx.codes.OK:
                    kind = FETCH_AUTH if self._is_auth_failure(response.status_code) else FETCH_STATUS
                    raise FetchError(
                        kind,
                        f"unexpected status code {response.status_code} from {repository.url}",
                        status_code=response.status_code,
                    )
                chunks: list[bytes] = []
                for chunk in response.iter_bytes():
                    chunks.append(chunk)
                    if self._clock() > deadline:
                        raise FetchError(
                            FETCH_TIMEOUT,
                            f"timed out reading {repository.url} after {timeout}s",
                        )
                content = b"".join(chunks)
        except httpx.TimeoutException as exc:
            raise FetchError(
                FETCH_TIMEOUT, f"timed out fetching {repository.url} after {timeout}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(FETCH_NETWORK, f"failed to fetch {repository.url}: {exc}") from exc

        self.logger.debug(
            "index_fetched",
            repository=repository.name,
            url=str(response.url),
            size=len(content),
        )
        return FetchResponse(
            url=str(response.url),
            status_code=response.status_code,
            content=content,
            headers=dict(response.headers),
        )

    # ------------------------------------------------------------------
    @staticmethod
    def _build_headers(repository: RepositoryConfig) -> dict[str, str]:
        # Later sources win: basic, then bearer token, then explicit headers
        headers: dict[str, str] = {}
        if repository.auth is None:
            return headers
        basic = repository.auth.basic
        if basic is not None:
            token = base64.b64encode(f"{basic.username}:{basic.password}".encode("utf-8"))
            headers["Authorization"] = f"Basic {token.decode('ascii')}"
        if repository.auth.bearer_token:
            headers["Authorization"] = f"Bearer {repository.auth.bearer_token}"
        headers.update(repository.auth.headers)
        return headers

    @staticmethod
    def _is_auth_failure(status_code: int) -> bool:
        return status_code in {401, 403}


__all__ = [
    "FETCH_AUTH",
    "FETCH_NETWORK",
    "FETCH_STATUS",
    "FETCH_TIMEOUT",
    "FetchError",
    "FetchResponse",
    "Fetcher",
]
