"""Client for previewing averages published by another karmic dice server.

Operators running one server per table can poll the others:

    client = AveragesClient("http://table-two:13013")
    reports = await client.fetch_all()        # {user_id: AveragesReport}
    report = await client.fetch_user("kim")

All connection and protocol failures raise RemoteError.
"""

from __future__ import annotations

import asyncio
import logging

import httpx
from pydantic import ValidationError

from karmic_dice.models import AveragesReport

logger = logging.getLogger(__name__)


class AveragesClient:
    """Async HTTP client for another server's /api averages endpoints.

    Args:
        base_url: Server root, e.g. "http://localhost:13013".
        timeout:  HTTP timeout in seconds. Defaults to 5.
    """

    def __init__(self, base_url: str, timeout: float = 5.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _get(self, path: str) -> object:
        url = f"{self._base_url}/api{path}"
        logger.debug("averages poll url=%s", url)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(url)
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise RemoteError(f"Cannot connect to {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise RemoteError(f"{self._base_url} returned HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise RemoteError(f"{self._base_url} timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise RemoteError(f"Request to {self._base_url} failed: {e}") from e
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteError(f"{self._base_url} did not return JSON") from e

    async def fetch_all(self) -> dict[str, AveragesReport]:
        data = await self._get("/averages")
        if not isinstance(data, dict):
            raise RemoteError(f"Unexpected averages payload from {self._base_url}")
        try:
            return {str(user): AveragesReport.model_validate(report) for user, report in data.items()}
        except ValidationError as e:
            raise RemoteError(f"Malformed averages from {self._base_url}") from e

    async def fetch_user(self, user_id: str) -> AveragesReport:
        data = await self._get(f"/users/{user_id}/averages")
        try:
            return AveragesReport.model_validate(data["averages"])  # type: ignore[index]
        except (KeyError, TypeError, ValidationError) as e:
            raise RemoteError(f"Malformed averages for {user_id} from {self._base_url}") from e


async def poll_servers(base_urls: list[str], timeout: float = 5.0) -> dict[str, dict[str, AveragesReport] | None]:
    """Fetch all averages from several servers concurrently.

    Unreachable servers map to None so one bad peer does not hide the rest.
    """
    clients = [AveragesClient(url, timeout=timeout) for url in base_urls]
    results = await asyncio.gather(*(c.fetch_all() for c in clients), return_exceptions=True)

    out: dict[str, dict[str, AveragesReport] | None] = {}
    for client, result in zip(clients, results):
        if isinstance(result, RemoteError):
            logger.warning("Averages poll failed: %s", result)
            out[client.base_url] = None
        elif isinstance(result, BaseException):
            raise result
        else:
            out[client.base_url] = result
    return out


class RemoteError(RuntimeError):
    """Raised when a remote server cannot be reached or returns bad data."""
