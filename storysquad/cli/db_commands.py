"""
Database CLI Commands

init, config
"""
import asyncio


class DbCommand:
    """Database CLI command handler."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def execute(self, args) -> int:
        """Execute database command."""
        if args.db_action == "init":
            return self._init(args)
        elif args.db_action == "config":
            return self._config(args)
        else:
            print("Error: Unknown db action")
            return 1

    def _init(self, args) -> int:
        """Create missing tables."""
        print("=== Database Init ===")

        if self.dry_run:
            print("[DRY RUN] Would create missing tables")
            return 0

        try:
            asyncio.run(self._async_init())
            print("✓ Tables created")
            return 0
        except Exception as e:
            print(f"Error: {e}")
            return 1

    async def _async_init(self) -> None:
        from storysquad.database import close_db, init_db

        try:
            await init_db()
        finally:
            await close_db()

    def _config(self, args) -> int:
        """Show effective settings."""
        from storysquad.config.settings import Settings

        print("=== Configuration ===")
        for key, value in Settings.as_dict().items():
            print(f"{key:<20} {value}")
        return 0
