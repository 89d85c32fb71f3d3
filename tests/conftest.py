"""
Shared pytest fixtures for leaderboard_sync tests.

The remote partition is simulated with an httpx MockTransport handler that
implements the conditional-update contract in memory, with an optional queue
of scripted responses for failure and conflict cases.
"""

import json
from typing import Any, List, Optional

import httpx
import pytest
import pytest_asyncio

from leaderboard_sync.services.remote import RemoteBackend
from leaderboard_sync.services.repository import LeaderboardRepository
from leaderboard_sync.services.storage import MemoryStorageBackend
from leaderboard_sync.services.sync_manager import SyncManager

ENDPOINT = "https://leaderboard.test/leaderboard"


class FakePartitionServer:
    """In-memory partition honouring the version check, usable as a MockTransport handler."""

    def __init__(self, scores: Optional[List[dict]] = None, version: int = 0):
        self.scores = list(scores or [])
        self.version = version
        self.requests: List[httpx.Request] = []
        self.bodies: List[Any] = []
        self.scripted: List[Any] = []

    def script(self, *responses):
        """Queue responses (or exceptions to raise) served before the stateful behaviour."""
        self.scripted.extend(responses)

    @property
    def puts(self) -> List[Any]:
        return [body for request, body in zip(self.requests, self.bodies) if request.method == "PUT"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append(request)
        self.bodies.append(body)

        if self.scripted:
            item = self.scripted.pop(0)
            if isinstance(item, Exception):
                raise item
            return item

        if request.method == "GET":
            return httpx.Response(200, json={'scores': self.scores, 'version': self.version})

        expected = body.get('version')
        if expected is not None and expected != self.version:
            return httpx.Response(409, json={
                'conflict': True,
                'message': "Version mismatch",
                'version': self.version,
                'scores': self.scores,
            })
        self.scores = body['scores']
        self.version += 1
        return httpx.Response(200, json={'scores': self.scores, 'version': self.version})


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def advance(self, seconds: float):
        self.now += seconds

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def server():
    return FakePartitionServer()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorageBackend()


@pytest_asyncio.fixture
async def remote(server):
    client = httpx.AsyncClient(transport=httpx.MockTransport(server))
    backend = RemoteBackend(endpoint=ENDPOINT, partition_id='1', timeout=1.0, auth_token='', client=client)
    yield backend
    await client.aclose()


@pytest.fixture
def repository(storage, remote):
    return LeaderboardRepository(storage, remote, key='test-board', max_entries=5)


@pytest.fixture
def local_manager(storage, clock):
    repository = LeaderboardRepository(storage, None, key='test-board', max_entries=5)
    return SyncManager(
        repository,
        is_remote=False,
        max_entries=5,
        max_save_attempts=3,
        refresh_cooldown=30.0,
        local_fallback=True,
        clock=clock,
    )


@pytest.fixture
def remote_manager(repository, clock):
    return SyncManager(
        repository,
        is_remote=True,
        max_entries=5,
        max_save_attempts=3,
        refresh_cooldown=30.0,
        local_fallback=True,
        clock=clock,
    )
