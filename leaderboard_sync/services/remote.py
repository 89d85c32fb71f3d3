"""
HTTP JSON client for the remote leaderboard partition.

Failures (timeouts, connection errors, unexpected statuses, undecodable bodies)
are logged and reported as ``None``; a 409 is not a failure and is returned with
its body so the caller can merge.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from leaderboard_sync.config import Config
from leaderboard_sync.constants import SyncConstants
from leaderboard_sync.utils.exceptions import RemoteTransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteResponse:
    """Status and decoded body of a write the server answered meaningfully."""
    status_code: int
    payload: Any


class RemoteBackend:
    """GET/PUT a single partition at ``endpoint?id=<partition_id>``."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        partition_id: Optional[str] = None,
        timeout: Optional[float] = None,
        auth_token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint if endpoint is not None else Config.REMOTE_ENDPOINT
        self.partition_id = str(partition_id if partition_id is not None else Config.PARTITION_ID)
        self.timeout = timeout if timeout is not None else Config.REMOTE_TIMEOUT
        auth_token = auth_token if auth_token is not None else Config.REMOTE_AUTH_TOKEN
        self._headers: Dict[str, str] = {'Accept': 'application/json'}
        if auth_token:
            self._headers['Authorization'] = f"Bearer {auth_token}"
        self._client = client
        self._owns_client = client is None

    @property
    def configured(self) -> bool:
        return bool(self.endpoint)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def _request(self, method: str, body: Any = None) -> httpx.Response:
        try:
            return await self._get_client().request(
                method,
                self.endpoint,
                params={'id': self.partition_id},
                json=body,
                headers=self._headers,
                timeout=self.timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise RemoteTransportError(method, self.endpoint, f"{type(e).__name__}: {e}") from e

    def _decode(self, method: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RemoteTransportError(
                method, self.endpoint, "response body is not JSON", response.status_code
            ) from e

    async def get_json(self) -> Any:
        """Read the whole partition; ``None`` on any failure."""
        try:
            response = await self._request("GET")
            if not response.is_success:
                raise RemoteTransportError(
                    "GET", self.endpoint, f"HTTP {response.status_code}", response.status_code
                )
            return self._decode("GET", response)
        except RemoteTransportError as e:
            logger.warning(str(e))
            return None

    async def put_json(self, body: Any) -> Optional[RemoteResponse]:
        """Conditionally write the partition; ``None`` on transport failure."""
        try:
            response = await self._request("PUT", body)
            if response.status_code == SyncConstants.STATUS_CONFLICT:
                try:
                    payload = response.json()
                except ValueError:
                    payload = None  # still a conflict, just without the server's list
                return RemoteResponse(response.status_code, payload)
            if not response.is_success:
                raise RemoteTransportError(
                    "PUT", self.endpoint, f"HTTP {response.status_code}", response.status_code
                )
            return RemoteResponse(response.status_code, self._decode("PUT", response))
        except RemoteTransportError as e:
            logger.warning(str(e))
            return None

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
