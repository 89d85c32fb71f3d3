import sys

from leaderboard_sync.main import main

sys.exit(main())
