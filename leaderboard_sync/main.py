import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import uvicorn

from leaderboard_sync.config import Config
from leaderboard_sync.constants import DisplayConstants
from leaderboard_sync.server import create_app
from leaderboard_sync.services.remote import RemoteBackend
from leaderboard_sync.services.repository import LeaderboardRepository
from leaderboard_sync.services.storage import StorageBackend, create_storage_backend
from leaderboard_sync.services.sync_manager import SyncManager
from leaderboard_sync.utils.formatter import format_rows
from leaderboard_sync.utils.logger import setup_logger
from leaderboard_sync.utils.ranking import RankingEngine


class LeaderboardClient:
    """Wires configured storage, remote backend, repository and sync manager together."""

    def __init__(self, is_remote: Optional[bool] = None):
        self.is_remote = is_remote
        self.storage: Optional[StorageBackend] = None
        self.remote: Optional[RemoteBackend] = None
        self.repository: Optional[LeaderboardRepository] = None
        self.manager: Optional[SyncManager] = None
        self.logger = logging.getLogger(__name__)

    async def setup(self):
        """Called before any command runs"""
        self.storage = await create_storage_backend()
        if Config.REMOTE_ENDPOINT:
            self.remote = RemoteBackend()
        self.repository = LeaderboardRepository(self.storage, self.remote)
        self.manager = SyncManager(self.repository, is_remote=self.is_remote)
        self.logger.info(
            f"Leaderboard ready ({'remote' if self.manager.is_remote else 'local'} mode, "
            f"{Config.STORAGE_BACKEND} storage)"
        )

    async def close(self):
        """Cleanup on shutdown"""
        if self.manager:
            await self.manager.cleanup()
        if self.remote:
            await self.remote.aclose()
        if self.storage:
            await self.storage.close()


async def show(client: LeaderboardClient, args) -> int:
    entries = await client.manager.load()
    rows = format_rows(entries)
    print("\n".join(rows) if rows else DisplayConstants.EMPTY_BOARD_TEXT)
    return 0


async def submit(client: LeaderboardClient, args) -> int:
    ok = await client.manager.submit(args.score, args.id, accuracy=args.accuracy)
    print("Score saved" if ok else "Score was not saved")
    return 0 if ok else 1


async def qualifies(client: LeaderboardClient, args) -> int:
    entries = await client.manager.load()
    outcome = RankingEngine.evaluate_qualification(args.score, entries, client.manager.max_entries)
    print(f"{'yes' if outcome.qualifies else 'no'} ({outcome.value})")
    return 0 if outcome.qualifies else 1


COMMANDS = {
    'show': show,
    'submit': submit,
    'qualifies': qualifies,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='leaderboard_sync', description="Leaderboard synchronization engine")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument('--remote', dest='remote', action='store_true', default=None,
                      help="Use the remote partition")
    mode.add_argument('--local', dest='remote', action='store_false',
                      help="Use local storage only")

    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('show', help="Print the ranked board")

    submit_parser = subparsers.add_parser('submit', help="Submit a final score")
    submit_parser.add_argument('score', type=float)
    submit_parser.add_argument('id', help="Player initials (1-3 letters A-Z)")
    submit_parser.add_argument('--accuracy', type=float, default=None, help="Hit ratio between 0 and 1")

    qualifies_parser = subparsers.add_parser('qualifies', help="Check whether a score earns an initials prompt")
    qualifies_parser.add_argument('score', type=float)

    serve_parser = subparsers.add_parser('serve', help="Run the leaderboard HTTP endpoint")
    serve_parser.add_argument('--host', default='127.0.0.1')
    serve_parser.add_argument('--port', type=int, default=8000)

    return parser


async def run(args) -> int:
    client = LeaderboardClient(is_remote=args.remote)
    try:
        await client.setup()
        return await COMMANDS[args.command](client, args)
    finally:
        await client.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    Config.validate()
    logger = setup_logger('leaderboard_sync')

    if args.command == 'serve':
        logger.info(f"Serving leaderboard on {args.host}:{args.port}")
        uvicorn.run(create_app(initial_partitions=[Config.PARTITION_ID]), host=args.host, port=args.port)
        return 0

    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
