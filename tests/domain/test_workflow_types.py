"""
Tests for workflow value objects (lifecycle_kernel.domain.workflow).
"""

from datetime import datetime, timezone

import pytest

from lifecycle_kernel.domain.workflow import (
    OUTCOME_GUARD_FAILED,
    OUTCOME_NO_TRANSITION,
    REASON_GUARD_NOT_SATISFIED,
    REASON_TRANSITION_UNDEFINED,
    AuthorizationResult,
    TrajectoryStep,
)

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestTrajectoryStep:

    def test_positions_are_one_based(self):
        with pytest.raises(ValueError):
            TrajectoryStep(1, 0, 1, None, None, T0)

    def test_open_step_has_no_decision(self):
        assert TrajectoryStep(1, 1, 1, None, None, T0).is_open
        assert not TrajectoryStep(1, 1, 1, 4, 2, T0).is_open


class TestAuthorizationResult:

    def test_allow_names_next_state(self):
        result = AuthorizationResult.allow(3, formula_id=1)
        assert result.allowed
        assert result.next_state_id == 3
        assert result.reason is None

    def test_undefined_and_guard_failed_reasons_differ(self):
        undefined = AuthorizationResult.undefined()
        failed = AuthorizationResult.guard_failed(formula_id=2)
        assert (undefined.outcome, undefined.reason) == (
            OUTCOME_NO_TRANSITION, REASON_TRANSITION_UNDEFINED,
        )
        assert (failed.outcome, failed.reason, failed.formula_id) == (
            OUTCOME_GUARD_FAILED, REASON_GUARD_NOT_SATISFIED, 2,
        )
        assert undefined.reason != failed.reason

    def test_contract_is_enforced(self):
        with pytest.raises(ValueError):
            AuthorizationResult(allowed=True)
        with pytest.raises(ValueError):
            AuthorizationResult(allowed=False)
