"""
Cohort and Clustering Test Suite
"""
import pytest

from storysquad.database import run_in_transaction
from storysquad.exceptions import NotFoundError
from storysquad.orm.cohort import SubmissionStatus
from storysquad.orm.squad import Member, Squad, Team
from storysquad.services.cluster_service import chunk, cluster_generation
from storysquad.services.cohort_service import (
    add_cohort,
    get_cohort,
    get_cohorts,
    get_submissions_by_cohort,
    moderate_post,
)
from storysquad.tests.factories import count_rows, seed_children, seed_cohort, seed_squad


# =============================================================================
# Cohorts
# =============================================================================

@pytest.mark.asyncio
async def test_add_and_list_cohorts(session_factory):
    await run_in_transaction(lambda db: add_cohort(7, db), session_factory)
    await run_in_transaction(lambda db: add_cohort(8, db), session_factory)

    cohorts = await run_in_transaction(get_cohorts, session_factory)

    assert [c.story_id for c in cohorts] == [7, 8]


@pytest.mark.asyncio
async def test_get_cohort_not_found(db):
    with pytest.raises(NotFoundError) as exc:
        await get_cohort(404, db)

    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_submissions_by_cohort(session_factory):
    cohort_id = await seed_cohort(session_factory)
    squad = await seed_squad(session_factory, cohort_id, [12, 3])
    loose = await seed_children(session_factory, cohort_id, 1, status=SubmissionStatus.PENDING)

    submissions = await run_in_transaction(
        lambda db: get_submissions_by_cohort(cohort_id, db), session_factory
    )

    assert list(submissions) == squad.submission_ids + loose
    first = submissions[squad.submission_ids[0]]
    assert first["points"] == 12
    assert first["status"] == "APPROVED"
    assert first["squad_id"] == squad.squad_id
    assert first["team_id"] == squad.team_ids[0]

    pending = submissions[loose[0]]
    assert pending["status"] == "PENDING"
    assert pending["points"] == 0
    assert pending["squad_id"] is None


# =============================================================================
# Moderation
# =============================================================================

@pytest.mark.asyncio
async def test_moderate_post_approves(session_factory):
    cohort_id = await seed_cohort(session_factory)
    [submission_id] = await seed_children(session_factory, cohort_id, 1, status=SubmissionStatus.PENDING)

    updated = await run_in_transaction(
        lambda db: moderate_post(submission_id, "APPROVED", db), session_factory
    )

    assert updated == 1
    submissions = await run_in_transaction(
        lambda db: get_submissions_by_cohort(cohort_id, db), session_factory
    )
    assert submissions[submission_id]["status"] == "APPROVED"


@pytest.mark.asyncio
async def test_moderate_post_unknown_submission(session_factory):
    updated = await run_in_transaction(lambda db: moderate_post(404, "REJECTED", db), session_factory)

    assert updated == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["PENDING", "approved", "DELETED"])
async def test_moderate_post_invalid_status(db, status):
    with pytest.raises(ValueError):
        await moderate_post(1, status, db)


# =============================================================================
# Clustering
# =============================================================================

def test_chunk():
    assert chunk([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
    assert chunk([], 3) == []

    with pytest.raises(ValueError):
        chunk([1], 0)


@pytest.mark.asyncio
async def test_cluster_generation_builds_squads_and_teams(session_factory):
    cohort_id = await seed_cohort(session_factory)
    await seed_children(session_factory, cohort_id, 10)
    await seed_children(session_factory, cohort_id, 2, status=SubmissionStatus.PENDING)

    squad_ids = await run_in_transaction(
        lambda db: cluster_generation(cohort_id, db), session_factory
    )

    # 10 approved children -> squads of 4, 4, 2; teams of 2
    assert len(squad_ids) == 3
    assert await count_rows(session_factory, Squad) == 3
    assert await count_rows(session_factory, Team) == 5
    assert await count_rows(session_factory, Member) == 10


@pytest.mark.asyncio
async def test_cluster_generation_skips_clustered_children(session_factory):
    cohort_id = await seed_cohort(session_factory)
    await seed_squad(session_factory, cohort_id, [1, 2, 3, 4])

    squad_ids = await run_in_transaction(
        lambda db: cluster_generation(cohort_id, db), session_factory
    )

    assert squad_ids == []
    assert await count_rows(session_factory, Member) == 4


@pytest.mark.asyncio
async def test_cluster_generation_custom_sizes(session_factory):
    cohort_id = await seed_cohort(session_factory)
    await seed_children(session_factory, cohort_id, 6)

    squad_ids = await run_in_transaction(
        lambda db: cluster_generation(cohort_id, db, squad_size=6, team_size=3), session_factory
    )

    assert len(squad_ids) == 1
    assert await count_rows(session_factory, Team) == 2


@pytest.mark.asyncio
async def test_cluster_generation_unknown_cohort(session_factory):
    with pytest.raises(NotFoundError):
        await run_in_transaction(lambda db: cluster_generation(404, db), session_factory)
