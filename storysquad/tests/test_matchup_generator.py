"""
Matchup Generator Test Suite

Pure pairing tests: no database involved.
"""
import inspect

import pytest

from storysquad.exceptions import InsufficientDataError
from storysquad.schemas.tournament import SubmissionStanding
from storysquad.services.matchup_generator import generate_matchups, pair_squad

WEEK = "2026-W42"


def make_standings(squad_id, points, first_id=1):
    return [
        SubmissionStanding(
            submission_id=first_id + i,
            child_id=first_id + i,
            member_id=first_id + i,
            team_id=squad_id * 10 + i % 2,
            squad_id=squad_id,
            points=value,
        )
        for i, value in enumerate(points)
    ]


# =============================================================================
# Source Code Audit
# =============================================================================

def test_generator_no_random_usage():
    """Pairing must be reproducible."""
    import storysquad.services.matchup_generator as gen

    source = inspect.getsource(gen).lower()

    assert "import random" not in source
    assert "shuffle" not in source


# =============================================================================
# pair_squad
# =============================================================================

def test_full_squad_gets_four_matchups_in_rank_order():
    standings = make_standings(1, [10, 80, 30, 70, 50, 60, 20, 40])

    drafts = pair_squad(1, standings, WEEK, 4)

    assert len(drafts) == 4
    assert [d.slot for d in drafts] == [1, 2, 3, 4]
    # 80 vs 70, 60 vs 50, 40 vs 30, 20 vs 10
    assert [(d.seed_points_a, d.seed_points_b) for d in drafts] == [
        (80, 70), (60, 50), (40, 30), (20, 10)
    ]
    assert all(d.seed_points_a >= d.seed_points_b for d in drafts)


def test_surplus_submissions_are_truncated():
    standings = make_standings(1, [100, 90, 80, 70, 60, 50, 40, 30, 20, 10])

    drafts = pair_squad(1, standings, WEEK, 4)

    assert len(drafts) == 4
    contested = {d.submission_a_id for d in drafts} | {d.submission_b_id for d in drafts}
    # The two lowest (20 and 10 points: ids 9 and 10) sit out
    assert 9 not in contested
    assert 10 not in contested


def test_odd_count_gets_trailing_bye():
    standings = make_standings(1, [30, 20, 10])

    drafts = pair_squad(1, standings, WEEK, 4)

    assert len(drafts) == 2
    assert not drafts[0].is_bye
    assert drafts[1].is_bye
    assert drafts[1].submission_a_id == 3
    assert drafts[1].seed_points_b is None


def test_single_submission_is_a_bye():
    drafts = pair_squad(5, make_standings(5, [42]), WEEK, 4)

    assert len(drafts) == 1
    assert drafts[0].is_bye
    assert drafts[0].squad_id == 5


def test_point_ties_break_on_submission_id():
    standings = make_standings(1, [50, 50, 50, 50], first_id=20)

    drafts = pair_squad(1, list(reversed(standings)), WEEK, 4)

    assert [(d.submission_a_id, d.submission_b_id) for d in drafts] == [(20, 21), (22, 23)]


def test_drafts_are_immutable():
    draft = pair_squad(1, make_standings(1, [2, 1]), WEEK, 4)[0]

    with pytest.raises(ValueError):
        draft.slot = 5

    with pytest.raises(ValueError):
        make_standings(1, [3])[0].points = 0


def test_empty_squad_raises_insufficient_data():
    with pytest.raises(InsufficientDataError) as exc:
        pair_squad(7, [], WEEK, 4)

    assert exc.value.status_code == 422
    assert "7" in exc.value.message


# =============================================================================
# generate_matchups
# =============================================================================

def test_empty_squad_skipped_others_paired():
    squads = {
        1: make_standings(1, [8, 7, 6, 5, 4, 3, 2, 1], first_id=1),
        2: [],
        3: make_standings(3, [9, 9], first_id=100),
    }

    drafts = generate_matchups(squads, WEEK, 4)

    assert [d.squad_id for d in drafts] == [1, 1, 1, 1, 3]


def test_squads_processed_in_ascending_id():
    squads = {
        9: make_standings(9, [1, 2], first_id=50),
        2: make_standings(2, [3, 4], first_id=10),
    }

    drafts = generate_matchups(squads, WEEK, 4)

    assert [d.squad_id for d in drafts] == [2, 9]


def test_generation_is_deterministic():
    squads = {
        1: make_standings(1, [5, 15, 25, 35, 45, 55, 65, 75], first_id=1),
        2: make_standings(2, [3, 3, 1], first_id=40),
    }

    first = [d.model_dump_json() for d in generate_matchups(squads, WEEK, 4)]
    second = [d.model_dump_json() for d in generate_matchups(squads, WEEK, 4)]

    assert first == second


def test_bracket_size_is_configurable():
    squads = {1: make_standings(1, [6, 5, 4, 3, 2, 1])}

    assert len(generate_matchups(squads, WEEK, 2)) == 2
    assert len(generate_matchups(squads, WEEK, 3)) == 3


def test_invalid_bracket_size_rejected():
    with pytest.raises(ValueError):
        generate_matchups({1: make_standings(1, [1, 2])}, WEEK, 0)
