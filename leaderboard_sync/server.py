"""
HTTP endpoint for versioned leaderboard partitions.

GET /leaderboard?id=<partition>  -> 200 {scores, version} | 400 | 404
PUT /leaderboard?id=<partition>  -> 200 {scores, version} | 400 | 404 | 409

A PUT body is ``{"scores": [...], "version": n}``; ``version`` is optional and
an absent version writes unconditionally. A stale version is answered with 409
and the partition's current state so the client can merge and retry.
"""

import logging
from collections.abc import Mapping
from contextlib import asynccontextmanager
from typing import Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from leaderboard_sync.config import Config
from leaderboard_sync.database.database import Database
from leaderboard_sync.services.partition_store import PartitionStore
from leaderboard_sync.utils.exceptions import (
    PartitionNotFoundError,
    ScoreValidationError,
    VersionConflictError,
)

logger = logging.getLogger(__name__)


def _partition_body(partition: dict) -> dict:
    return {'scores': partition['scores'], 'version': partition['version']}


def _require_id(partition_id: Optional[str]) -> str:
    if not partition_id:
        raise ScoreValidationError("Missing id")
    return partition_id


def create_app(store: Optional[PartitionStore] = None, initial_partitions: Iterable[str] = ()) -> FastAPI:
    """
    Build the leaderboard API.

    Without a ``store`` the app opens ``Config.DATABASE_URL`` on startup and
    closes it on shutdown. ``initial_partitions`` are created empty if missing.
    """
    initial_partitions = list(initial_partitions)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = None
        if app.state.store is None:
            database = Database(Config.DATABASE_URL)
            await database.initialize()
            app.state.store = PartitionStore(database.session_factory)
        for partition_id in initial_partitions:
            await app.state.store.create(partition_id)
        yield
        if database is not None:
            await database.close()

    app = FastAPI(title="Leaderboard Sync", lifespan=lifespan)
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(ScoreValidationError)
    async def handle_validation_error(request: Request, exc: ScoreValidationError):
        return JSONResponse(status_code=400, content={'message': exc.user_message})

    @app.exception_handler(PartitionNotFoundError)
    async def handle_not_found(request: Request, exc: PartitionNotFoundError):
        return JSONResponse(status_code=404, content={'message': exc.user_message})

    @app.exception_handler(VersionConflictError)
    async def handle_conflict(request: Request, exc: VersionConflictError):
        logger.info(str(exc))
        return JSONResponse(
            status_code=409,
            content={
                'conflict': True,
                'message': exc.user_message,
                'version': exc.current_version,
                'scores': exc.current_scores,
            },
        )

    @app.get("/leaderboard")
    async def get_leaderboard(request: Request, id: Optional[str] = None):
        partition = await request.app.state.store.get(_require_id(id))
        return _partition_body(partition)

    @app.put("/leaderboard")
    async def put_leaderboard(request: Request, id: Optional[str] = None):
        partition_id = _require_id(id)
        try:
            body = await request.json()
        except ValueError:
            raise ScoreValidationError("Body must be JSON")
        if not isinstance(body, Mapping):
            raise ScoreValidationError("Body must be an object")

        version = body.get('version')
        if version is not None and (isinstance(version, bool) or not isinstance(version, int) or version < 0):
            raise ScoreValidationError("version must be a non-negative integer")

        partition = await request.app.state.store.conditional_update(
            partition_id, body.get('scores'), expected_version=version
        )
        logger.debug(f"PUT partition '{partition_id}' -> version {partition['version']}")
        return _partition_body(partition)

    return app
