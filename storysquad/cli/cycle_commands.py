"""
Weekly Cycle CLI Commands

generate, resolve, reset
"""
import asyncio

from storysquad.exceptions import StorySquadException


class CycleCommand:
    """Cycle CLI command handler."""

    def __init__(self, dry_run: bool = False, session_factory=None):
        self.dry_run = dry_run
        self.session_factory = session_factory

    def execute(self, args) -> int:
        """Execute cycle command."""
        if args.cycle_action == "generate":
            return self._generate(args)
        elif args.cycle_action == "resolve":
            return self._resolve(args)
        elif args.cycle_action == "reset":
            return self._reset(args)
        else:
            print("Error: Unknown cycle action")
            return 1

    def _generate(self, args) -> int:
        """Generate faceoffs."""
        from storysquad.services.cycle_orchestrator import current_week, run_generation_cycle

        week = args.week or current_week()
        print(f"=== Generate Faceoffs ({week}) ===")

        if self.dry_run:
            print(f"[DRY RUN] Would generate faceoffs for week {week}")
            return 0

        try:
            report = asyncio.run(run_generation_cycle(
                week=week, cohort_id=args.cohort, session_factory=self.session_factory
            ))
        except StorySquadException as e:
            print(f"✗ Generation failed: {e.message}")
            return 1

        if report.reused_existing:
            print(f"Week {week} was already generated")
        print(f"✓ {len(report.faceoff_ids)} faceoffs")
        if report.skipped_squads:
            print(f"  Skipped squads (no submissions): {report.skipped_squads}")
        return 0

    def _resolve(self, args) -> int:
        """Tally votes and credit standings."""
        from storysquad.services.cycle_orchestrator import run_resolution_cycle

        print("=== Calculate Results ===")

        if self.dry_run:
            print("[DRY RUN] Would resolve all open faceoffs")
            return 0

        try:
            report = asyncio.run(run_resolution_cycle(
                week=args.week, session_factory=self.session_factory
            ))
        except StorySquadException as e:
            print(f"✗ Resolution failed: {e.message}")
            return 1

        print(f"✓ {report.resolved_count} faceoffs resolved")
        if report.squad_credits:
            print(f"\n{'Squad':<8} {'Credited':<10}")
            print("-" * 20)
            for squad_id, credited in sorted(report.squad_credits.items()):
                print(f"{squad_id:<8} {credited:<10}")
        return 0

    def _reset(self, args) -> int:
        """Reset game state."""
        from storysquad.services.cycle_orchestrator import RESET_TABLES, reset_game_for_testing

        print("=== Reset Game State ===")

        if self.dry_run:
            print(f"[DRY RUN] Would empty: {', '.join(RESET_TABLES)}")
            return 0

        if not args.force:
            print("Error: reset deletes all squads, faceoffs and votes; pass --force to confirm")
            return 1

        try:
            asyncio.run(reset_game_for_testing(session_factory=self.session_factory))
        except StorySquadException as e:
            print(f"✗ Reset failed: {e.message}")
            return 1

        print("✓ Game state reset (submissions kept)")
        return 0
