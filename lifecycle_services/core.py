"""
lifecycle_services.core -- LifecycleCore, the public face of the engine.

Responsibility:
    One object per unit of work that wires selectors, evaluators, the
    authorizer, the trajectory store and the process driver around a
    caller-owned Session, and exposes the engine's operations.

Architecture position:
    Services layer, outermost.  Boundary code (HTTP handlers, CLI, batch
    jobs) talks to LifecycleCore only.

Invariants enforced:
    - Never commits; ``session_scope()`` or the caller does.
    - Storage errors (OperationalError, InterfaceError) surface as
      StorageFaultError chained to the original; nothing is retried.

Usage:
    with session_scope() as session:
        core = LifecycleCore(session)
        outcome = core.submit_decision(process_id, decision_id, actor_id)
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Callable

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session

from lifecycle_config.settings import LifecycleSettings, get_settings
from lifecycle_kernel.domain.clock import Clock
from lifecycle_kernel.domain.workflow import (
    AuthorizationResult,
    DecisionOption,
    TrajectoryStep,
    TransitionOutcome,
)
from lifecycle_kernel.exceptions import (
    NoTrajectoryError,
    ProcessNotFoundError,
    StorageFaultError,
)
from lifecycle_kernel.logging_config import get_logger
from lifecycle_kernel.selectors.template_selector import TemplateSelector
from lifecycle_kernel.selectors.trajectory_selector import TrajectorySelector
from lifecycle_kernel.services.trajectory_store import TrajectoryStore
from lifecycle_services.formula_evaluator import FormulaEvaluator
from lifecycle_services.predicate_evaluator import PredicateEvaluator
from lifecycle_services.process_driver import ProcessDriver
from lifecycle_services.transition_authorizer import (
    DecisionMapLookup,
    FormulaBindingLookup,
    TransitionAuthorizer,
)

logger = get_logger("services.core")


@contextmanager
def _storage_guard(operation: str) -> Iterator[None]:
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        logger.error(
            "storage_fault",
            extra={"operation": operation, "detail": str(exc.orig or exc)},
        )
        raise StorageFaultError(operation, str(exc.orig or exc)) from exc


class LifecycleCore:
    """
    Transition-gating engine facade.

    Args:
        session: Caller-owned SQLAlchemy session.
        settings: Runtime settings; ``get_settings()`` when omitted.
        clock: Timestamp source for trajectory steps.
        decision_map / formula_bindings: Override the database-backed
            lookups (for example with a StaticDecisionMap).
        outcome_sink: Receives every workflow_transition trace record.
    """

    def __init__(
        self,
        session: Session,
        settings: LifecycleSettings | None = None,
        clock: Clock | None = None,
        decision_map: DecisionMapLookup | None = None,
        formula_bindings: FormulaBindingLookup | None = None,
        outcome_sink: Callable[[dict], None] | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self._templates = TemplateSelector(session)
        self._trajectories = TrajectorySelector(session)
        self.formula_evaluator = FormulaEvaluator(session, PredicateEvaluator(session))
        self.authorizer = TransitionAuthorizer(
            decision_map or self._templates,
            formula_bindings or self._templates,
            self.formula_evaluator,
        )
        self.store = TrajectoryStore(session, clock)
        self.driver = ProcessDriver(
            session,
            authorizer=self.authorizer,
            store=self.store,
            access_lookup=self._templates,
            enforce_state_access=self.settings.enforce_state_access,
            outcome_sink=outcome_sink,
        )

    # -------------------------------------------------------------------------
    # Core operations
    # -------------------------------------------------------------------------

    def authorize_transition(
        self,
        template_id: int,
        state_id: int,
        decision_id: int,
        process_id: int,
        subject_id: str,
    ) -> AuthorizationResult:
        with _storage_guard("authorize_transition"):
            return self.authorizer.authorize(
                template_id, state_id, decision_id, process_id, subject_id,
            )

    def submit_decision(
        self,
        process_id: int,
        decision_id: int,
        actor_id: int | None,
    ) -> TransitionOutcome:
        with _storage_guard("submit_decision"):
            return self.driver.submit_decision(process_id, decision_id, actor_id)

    def evaluate_formula(self, formula_id: int, process_id: int, subject_id: str) -> bool:
        with _storage_guard("evaluate_formula"):
            return self.formula_evaluator.evaluate_formula(formula_id, process_id, subject_id)

    def get_current_state(self, process_id: int) -> TrajectoryStep | None:
        with _storage_guard("get_current_state"):
            return self.store.current_step(process_id)

    def get_history(self, process_id: int) -> tuple[TrajectoryStep, ...]:
        with _storage_guard("get_history"):
            return self.store.history(process_id)

    # -------------------------------------------------------------------------
    # Supplementary operations
    # -------------------------------------------------------------------------

    def available_decisions(self, process_id: int) -> tuple[DecisionOption, ...]:
        """Decisions the decision map allows from the process's current state.

        Guards are not evaluated; a listed decision may still be refused.
        """
        with _storage_guard("available_decisions"):
            process = self._require_process(process_id)
            current = self.store.current_step(process_id)
            if current is None:
                raise NoTrajectoryError(process_id)
            return self.authorizer.decision_map.decisions_from(
                process.template_id, current.state_id,
            )

    def check_state_access(self, actor_id: int, process_id: int) -> bool:
        with _storage_guard("check_state_access"):
            process = self._require_process(process_id)
            current = self.store.current_step(process_id)
            if current is None:
                return False
            return self._templates.actor_has_access(
                actor_id, process.template_id, current.state_id,
            )

    def init_process(
        self,
        template_id: int,
        subject_id: str,
        actor_id: int | None,
        name: str | None = None,
    ) -> int:
        with _storage_guard("init_process"):
            return self.store.init_process(template_id, subject_id, actor_id, name=name)

    def delete_process(self, process_id: int) -> None:
        with _storage_guard("delete_process"):
            self.store.delete_process(process_id)

    def describe_formula(self, formula_id: int) -> str:
        with _storage_guard("describe_formula"):
            return self.formula_evaluator.describe(formula_id)

    # -------------------------------------------------------------------------

    def _require_process(self, process_id: int):
        process = self._trajectories.get_process(process_id)
        if process is None:
            raise ProcessNotFoundError(process_id)
        return process
