"""
Cohort CLI Commands

list, submissions, cluster, moderate
"""
import asyncio

from storysquad.database import run_in_transaction
from storysquad.exceptions import StorySquadException


class CohortCommand:
    """Cohort CLI command handler."""

    def __init__(self, dry_run: bool = False, session_factory=None):
        self.dry_run = dry_run
        self.session_factory = session_factory

    def execute(self, args) -> int:
        """Execute cohort command."""
        if args.cohort_action == "list":
            return self._list(args)
        elif args.cohort_action == "submissions":
            return self._submissions(args)
        elif args.cohort_action == "cluster":
            return self._cluster(args)
        elif args.cohort_action == "moderate":
            return self._moderate(args)
        else:
            print("Error: Unknown cohort action")
            return 1

    def _run(self, fn):
        return asyncio.run(run_in_transaction(fn, self.session_factory))

    def _list(self, args) -> int:
        """List cohorts."""
        from storysquad.services.cohort_service import get_cohorts

        print("=== Cohorts ===")

        try:
            cohorts = self._run(get_cohorts)
        except StorySquadException as e:
            print(f"Error: {e.message}")
            return 1

        if not cohorts:
            print("No cohorts found")
            return 0

        print(f"\n{'ID':<5} {'Story':<8}")
        print("-" * 15)
        for cohort in cohorts:
            print(f"{cohort.id:<5} {cohort.story_id:<8}")
        return 0

    def _submissions(self, args) -> int:
        """List a cohort's submissions."""
        from storysquad.services.cohort_service import get_submissions_by_cohort

        print(f"=== Cohort {args.id} Submissions ===")

        try:
            submissions = self._run(lambda db: get_submissions_by_cohort(args.id, db))
        except StorySquadException as e:
            print(f"Error: {e.message}")
            return 1

        if not submissions:
            print("No submissions found")
            return 0

        print(f"\n{'ID':<6} {'Child':<20} {'Status':<10} {'Points':<8} {'Squad':<6}")
        print("-" * 52)
        for entry in submissions.values():
            squad = entry["squad_id"] if entry["squad_id"] is not None else "-"
            print(
                f"{entry['id']:<6} {entry['child_name'][:18]:<20} {entry['status']:<10} "
                f"{entry['points']:<8} {squad:<6}"
            )
        return 0

    def _cluster(self, args) -> int:
        """Form squads and teams."""
        from storysquad.services.cluster_service import cluster_generation

        print(f"=== Cluster Cohort {args.id} ===")

        if self.dry_run:
            print(f"[DRY RUN] Would cluster cohort {args.id}")
            return 0

        try:
            squad_ids = self._run(lambda db: cluster_generation(args.id, db))
        except StorySquadException as e:
            print(f"✗ Clustering failed: {e.message}")
            return 1

        print(f"✓ {len(squad_ids)} squads created")
        return 0

    def _moderate(self, args) -> int:
        """Approve or reject a submission."""
        from storysquad.services.cohort_service import moderate_post

        if self.dry_run:
            print(f"[DRY RUN] Would mark submission {args.submission} {args.status}")
            return 0

        try:
            updated = self._run(lambda db: moderate_post(args.submission, args.status, db))
        except (StorySquadException, ValueError) as e:
            print(f"Error: {e}")
            return 1

        if not updated:
            print(f"✗ Submission {args.submission} not found")
            return 1

        print(f"✓ Submission {args.submission} {args.status}")
        return 0
