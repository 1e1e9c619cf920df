"""
Concurrent decision submission on one process.

Two sessions observe the same last trajectory step.  The first to commit
wins; the second must be refused with TrajectoryConflictError rather than
overwriting or duplicating a position.  The interleaving is forced
deterministically on a file-backed SQLite database so both sessions use
separate connections.

Expected Behavior:
- Exactly one step per position after the race
- The winner's decision is recorded, the loser's is not
- The loser gets a conflict trace and an unchanged database
"""

import pytest
from sqlalchemy.orm import sessionmaker

from lifecycle_config import seed_configuration
from lifecycle_config.settings import LifecycleSettings
from lifecycle_kernel.db.engine import build_engine, create_tables
from lifecycle_kernel.domain.workflow import OUTCOME_CONFLICT
from lifecycle_kernel.exceptions import TrajectoryConflictError
from lifecycle_kernel.services.trajectory_store import TrajectoryStore
from lifecycle_services.core import LifecycleCore
from tests.conftest import (
    CANCEL,
    CANCELLED,
    DRAFT,
    MODERATION,
    MODERATOR,
    NEW_PRODUCT_TEMPLATE,
    SUBMIT,
    VALID_PRODUCT,
    seed_actors,
    seed_catalog,
)


@pytest.fixture
def session_factory(tmp_path, marketplace_config):
    eng = build_engine(f"sqlite:///{tmp_path / 'race.db'}")
    create_tables(eng)
    factory = sessionmaker(bind=eng, expire_on_commit=False)
    with factory() as setup:
        seed_configuration(setup, marketplace_config)
        seed_catalog(setup)
        seed_actors(setup)
        setup.commit()
    yield factory
    eng.dispose()


@pytest.fixture
def process_id(session_factory):
    with session_factory() as setup:
        pid = TrajectoryStore(setup).init_process(NEW_PRODUCT_TEMPLATE, VALID_PRODUCT, MODERATOR)
        setup.commit()
    return pid


def _history(session_factory, process_id):
    with session_factory() as reader:
        return [
            (s.position, s.state_id, s.decision_id)
            for s in TrajectoryStore(reader).history(process_id)
        ]


def test_stale_writer_conflicts(session_factory, process_id):
    winner = session_factory()
    loser = session_factory()
    try:
        observed = TrajectoryStore(loser).current_step(process_id).position
        assert TrajectoryStore(winner).current_step(process_id).position == observed

        TrajectoryStore(winner).append_transition(
            process_id, SUBMIT, MODERATOR, MODERATION, expected_position=observed,
        )
        winner.commit()

        with pytest.raises(TrajectoryConflictError) as exc_info:
            TrajectoryStore(loser).append_transition(
                process_id, CANCEL, MODERATOR, CANCELLED, expected_position=observed,
            )
        loser.rollback()
        assert exc_info.value.actual_position == observed + 1
    finally:
        winner.close()
        loser.close()

    assert _history(session_factory, process_id) == [
        (1, DRAFT, SUBMIT),
        (2, MODERATION, None),
    ]


class _InterleavingStore(TrajectoryStore):
    """Runs a competing submission right after the current step is read."""

    def __init__(self, session, competitor):
        super().__init__(session)
        self._competitor = competitor

    def current_step(self, process_id):
        step = super().current_step(process_id)
        if self._competitor is not None:
            competitor, self._competitor = self._competitor, None
            competitor()
        return step


def test_driver_reports_conflict(session_factory, process_id):
    def competing_submit():
        with session_factory() as other:
            LifecycleCore(other, settings=LifecycleSettings()).submit_decision(
                process_id, SUBMIT, MODERATOR,
            )
            other.commit()

    sink = []
    loser = session_factory()
    try:
        core = LifecycleCore(loser, settings=LifecycleSettings(), outcome_sink=sink.append)
        core.driver._store = _InterleavingStore(loser, competing_submit)

        with pytest.raises(TrajectoryConflictError):
            core.submit_decision(process_id, CANCEL, MODERATOR)
        loser.rollback()
    finally:
        loser.close()

    assert [r["outcome"] for r in sink] == [OUTCOME_CONFLICT]
    assert _history(session_factory, process_id) == [
        (1, DRAFT, SUBMIT),
        (2, MODERATION, None),
    ]
