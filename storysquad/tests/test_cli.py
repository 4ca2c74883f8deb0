"""
CLI Test Suite

Handlers run their own event loop via asyncio.run, so these tests are
synchronous and use a NullPool engine that opens connections per loop.
"""
import asyncio

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from storysquad.cli import create_parser, main
from storysquad.cli.cohort_commands import CohortCommand
from storysquad.cli.cycle_commands import CycleCommand
from storysquad.cli.db_commands import DbCommand
from storysquad.database import init_db
from storysquad.orm.faceoff import Faceoff
from storysquad.orm.squad import Squad
from storysquad.tests.factories import count_rows, fetch_rows, seed_children, seed_cohort, seed_squad


@pytest.fixture
def cli_factory(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'storysquad_cli.db'}", poolclass=NullPool
    )
    asyncio.run(init_db(engine))
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


def parse(*argv):
    return create_parser().parse_args(list(argv))


# =============================================================================
# Parser
# =============================================================================

def test_parser_cycle_generate():
    args = parse("cycle", "generate", "--week", "2026-W42", "--cohort", "3")

    assert args.command == "cycle"
    assert args.cycle_action == "generate"
    assert args.week == "2026-W42"
    assert args.cohort == 3


def test_parser_global_flags():
    args = parse("--dry-run", "--log-level", "DEBUG", "cycle", "resolve")

    assert args.dry_run
    assert args.log_level == "DEBUG"
    assert args.week is None


def test_parser_rejects_unknown_moderation_status():
    with pytest.raises(SystemExit):
        parse("cohort", "moderate", "--submission", "1", "--status", "PENDING")


def test_main_without_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out.lower()


# =============================================================================
# Dry runs
# =============================================================================

def test_dry_run_generate(capsys):
    code = CycleCommand(dry_run=True).execute(parse("cycle", "generate", "--week", "2026-W42"))

    assert code == 0
    assert "[DRY RUN] Would generate faceoffs for week 2026-W42" in capsys.readouterr().out


def test_dry_run_reset_lists_tables(capsys):
    code = CycleCommand(dry_run=True).execute(parse("cycle", "reset"))

    out = capsys.readouterr().out
    assert code == 0
    assert "votes" in out and "squads" in out


def test_reset_requires_force(cli_factory, capsys):
    code = CycleCommand(session_factory=cli_factory).execute(parse("cycle", "reset"))

    assert code == 1
    assert "--force" in capsys.readouterr().out


def test_db_config_masks_credentials(monkeypatch, capsys):
    from storysquad.config.settings import Settings

    monkeypatch.setattr(Settings, "DATABASE_URL", "postgresql+asyncpg://story:secret@db:5432/squad")

    assert DbCommand().execute(parse("db", "config")) == 0

    out = capsys.readouterr().out
    assert "secret" not in out
    assert "db:5432/squad" in out


# =============================================================================
# Full cycle through the handlers
# =============================================================================

def test_generate_resolve_reset(cli_factory, capsys):
    cohort_id = asyncio.run(seed_cohort(cli_factory))
    squad = asyncio.run(seed_squad(cli_factory, cohort_id, [8, 7, 6, 5]))
    command = CycleCommand(session_factory=cli_factory)

    assert command.execute(parse("cycle", "generate", "--week", "2026-W42")) == 0
    assert "✓ 2 faceoffs" in capsys.readouterr().out

    assert command.execute(parse("cycle", "generate", "--week", "2026-W42")) == 0
    assert "already generated" in capsys.readouterr().out

    assert command.execute(parse("cycle", "resolve", "--week", "2026-W42")) == 0
    assert "✓ 2 faceoffs resolved" in capsys.readouterr().out

    rows = asyncio.run(fetch_rows(cli_factory, select(Squad.points).where(Squad.id == squad.squad_id)))
    assert rows[0][0] == 20

    assert command.execute(parse("cycle", "reset", "--force")) == 0
    assert asyncio.run(count_rows(cli_factory, Faceoff)) == 0


def test_cohort_cluster_and_submissions(cli_factory, capsys):
    cohort_id = asyncio.run(seed_cohort(cli_factory))
    asyncio.run(seed_children(cli_factory, cohort_id, 5))
    command = CohortCommand(session_factory=cli_factory)

    assert command.execute(parse("cohort", "cluster", "--id", str(cohort_id))) == 0
    assert "✓ 2 squads created" in capsys.readouterr().out

    assert command.execute(parse("cohort", "submissions", "--id", str(cohort_id))) == 0
    out = capsys.readouterr().out
    assert "loose-0" in out
    assert "APPROVED" in out


def test_cohort_commands_report_errors(cli_factory, capsys):
    command = CohortCommand(session_factory=cli_factory)

    assert command.execute(parse("cohort", "cluster", "--id", "404")) == 1
    assert "Cohort 404 not found" in capsys.readouterr().out

    assert command.execute(parse("cohort", "moderate", "--submission", "404", "--status", "APPROVED")) == 1
    assert "not found" in capsys.readouterr().out


def test_cohort_list(cli_factory, capsys):
    asyncio.run(seed_cohort(cli_factory, story_id=12))

    assert CohortCommand(session_factory=cli_factory).execute(parse("cohort", "list")) == 0
    assert "12" in capsys.readouterr().out
