"""
Typed Exception Hierarchy for the Lifecycle Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The boundary layer (HTTP handlers, CLI, batch jobs) must map failures to
different response semantics: a missing process is a 404, a rejected
decision is a 422, a lost race is a 409 the caller may retry.  Parsing
message strings for that is fragile, so every failure is:

  1. A TYPED exception class (catch by type, not message)
  2. Carrying a CODE class attribute (machine-readable, API-safe)
  3. Carrying structured DATA as attributes (not just a message string)

Example:
    try:
        driver.submit_decision(process_id, decision_id, actor_id)
    except GuardNotSatisfiedError as e:
        api_response(422, code=e.code, reason=e.reason)
    except TrajectoryConflictError:
        retry_after_reread()

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LifecycleKernelError (base)
    |
    +-- NotFoundError
    |   +-- ProcessNotFoundError
    |   +-- TemplateNotFoundError
    |   +-- StateNotFoundError
    |   +-- DecisionNotFoundError
    |   +-- PredicateNotFoundError
    |   +-- FormulaNotFoundError
    |   +-- ParameterNotFoundError
    |   +-- ProductNotFoundError
    |   +-- NoTrajectoryError
    |
    +-- PolicyRejectionError
    |   +-- TransitionUndefinedError
    |   +-- GuardNotSatisfiedError
    |   +-- StateAccessDeniedError
    |
    +-- ConcurrencyError
    |   +-- TrajectoryConflictError
    |
    +-- ReferentialIntegrityError
    |
    +-- TemplateDefinitionError
    |   +-- MissingInitialStateError
    |   +-- AmbiguousInitialStateError
    |   +-- NonDeterministicTransitionError
    |
    +-- InvalidPredicateError
    +-- ImmutabilityViolationError
    +-- StorageFaultError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
NotFound        | PROCESS_NOT_FOUND           | Process id doesn't exist
                | TEMPLATE_NOT_FOUND          | Template id doesn't exist
                | STATE_NOT_FOUND             | State id doesn't exist
                | DECISION_NOT_FOUND          | Decision id doesn't exist
                | PREDICATE_NOT_FOUND         | Predicate id doesn't exist
                | FORMULA_NOT_FOUND           | Transition function doesn't exist
                | PARAMETER_NOT_FOUND         | Parameter id doesn't exist
                | PRODUCT_NOT_FOUND           | Product id doesn't exist
                | NO_TRAJECTORY               | Process has no trajectory steps
----------------|-----------------------------|-----------------------------------------
Policy          | TRANSITION_UNDEFINED        | Decision not in the decision map
                | GUARD_NOT_SATISFIED         | Bound DNF formula evaluated false
                | STATE_ACCESS_DENIED         | Actor's groups lack access to state
----------------|-----------------------------|-----------------------------------------
Concurrency     | TRAJECTORY_CONFLICT         | Concurrent append lost the race
----------------|-----------------------------|-----------------------------------------
Integrity       | REFERENTIAL_INTEGRITY       | Deleting a row still referenced
----------------|-----------------------------|-----------------------------------------
Template        | MISSING_INITIAL_STATE       | Template has no initial state
                | AMBIGUOUS_INITIAL_STATE     | Template has >1 initial state
                | NON_DETERMINISTIC_TRANSITION| Second next state for same triple
----------------|-----------------------------|-----------------------------------------
Predicate       | INVALID_PREDICATE           | More than one discriminator set
Immutability    | IMMUTABILITY_VIOLATION      | Rewriting a recorded trajectory step
Storage         | STORAGE_FAULT               | Database unavailable / erroring

===============================================================================
HANDLING PATTERNS
===============================================================================

1. POLICY REJECTIONS ARE USER-ACTIONABLE, NOT FAULTS:

    except PolicyRejectionError as e:
        return {"error": e.code, "reason": e.reason}     # 422

2. CONFLICTS ARE RETRYABLE:

    except TrajectoryConflictError as e:
        session.rollback()
        # re-read the current state and resubmit if still meaningful

3. STORAGE FAULTS ARE TERMINAL FOR THE REQUEST:

    except StorageFaultError:
        raise   # retry policy belongs to the storage client

===============================================================================
"""


class LifecycleKernelError(Exception):
    """
    Base exception for all lifecycle kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LIFECYCLE_KERNEL_ERROR"


# Not-found exceptions


class NotFoundError(LifecycleKernelError):
    """Base exception for references that do not exist where required."""

    code: str = "NOT_FOUND"
    entity_type: str = "Entity"

    def __init__(self, entity_id: int | str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type} not found: {entity_id}")


class ProcessNotFoundError(NotFoundError):
    """Process with given ID was not found."""

    code: str = "PROCESS_NOT_FOUND"
    entity_type: str = "Process"


class TemplateNotFoundError(NotFoundError):
    """Process template with given ID was not found."""

    code: str = "TEMPLATE_NOT_FOUND"
    entity_type: str = "ProcessTemplate"


class StateNotFoundError(NotFoundError):
    """State with given ID was not found."""

    code: str = "STATE_NOT_FOUND"
    entity_type: str = "State"


class DecisionNotFoundError(NotFoundError):
    """Decision with given ID was not found."""

    code: str = "DECISION_NOT_FOUND"
    entity_type: str = "Decision"


class PredicateNotFoundError(NotFoundError):
    """Predicate with given ID was not found."""

    code: str = "PREDICATE_NOT_FOUND"
    entity_type: str = "Predicate"


class FormulaNotFoundError(NotFoundError):
    """Transition function (formula) with given ID was not found."""

    code: str = "FORMULA_NOT_FOUND"
    entity_type: str = "TransitionFunction"


class ParameterNotFoundError(NotFoundError):
    """Parameter with given ID was not found."""

    code: str = "PARAMETER_NOT_FOUND"
    entity_type: str = "Parameter"


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"
    entity_type: str = "Product"


class NoTrajectoryError(NotFoundError):
    """Process exists but has no trajectory steps."""

    code: str = "NO_TRAJECTORY"
    entity_type: str = "Trajectory of process"

    def __init__(self, process_id: int):
        self.process_id = process_id
        super().__init__(process_id)


# Policy rejections


class PolicyRejectionError(LifecycleKernelError):
    """
    A decision was refused by workflow policy.

    Always carries a human-readable reason.  Never a fault: the caller can
    act on it (choose another decision, fix parameters, ask someone else).
    """

    code: str = "POLICY_REJECTION"

    def __init__(self, process_id: int, decision_id: int, reason: str):
        self.process_id = process_id
        self.decision_id = decision_id
        self.reason = reason
        super().__init__(
            f"Decision {decision_id} rejected for process {process_id}: {reason}"
        )


class TransitionUndefinedError(PolicyRejectionError):
    """The decision map has no entry for (template, state, decision)."""

    code: str = "TRANSITION_UNDEFINED"


class GuardNotSatisfiedError(PolicyRejectionError):
    """The guard formula bound to the current state evaluated false."""

    code: str = "GUARD_NOT_SATISFIED"

    def __init__(
        self,
        process_id: int,
        decision_id: int,
        reason: str,
        formula_id: int | None = None,
    ):
        self.formula_id = formula_id
        super().__init__(process_id, decision_id, reason)


class StateAccessDeniedError(PolicyRejectionError):
    """None of the actor's groups may act on the process's current state."""

    code: str = "STATE_ACCESS_DENIED"

    def __init__(self, process_id: int, decision_id: int, actor_id: int, state_id: int):
        self.actor_id = actor_id
        self.state_id = state_id
        super().__init__(
            process_id,
            decision_id,
            f"actor {actor_id} has no access to state {state_id}",
        )


# Concurrency


class ConcurrencyError(LifecycleKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class TrajectoryConflictError(ConcurrencyError):
    """
    A concurrent append advanced the trajectory first.

    The caller should roll back, re-read the current state and retry.
    """

    code: str = "TRAJECTORY_CONFLICT"

    def __init__(
        self,
        process_id: int,
        expected_position: int | None,
        actual_position: int | None = None,
    ):
        self.process_id = process_id
        self.expected_position = expected_position
        self.actual_position = actual_position
        super().__init__(
            f"Trajectory conflict on process {process_id}: expected last "
            f"position {expected_position}, found {actual_position}"
        )


# Referential integrity


class ReferentialIntegrityError(LifecycleKernelError):
    """A dictionary row cannot be deleted because other rows reference it."""

    code: str = "REFERENTIAL_INTEGRITY"

    def __init__(self, entity_type: str, entity_id: int | str, referenced_by: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.referenced_by = referenced_by
        super().__init__(
            f"{entity_type} {entity_id} cannot be deleted: referenced by {referenced_by}"
        )


# Template definition


class TemplateDefinitionError(LifecycleKernelError):
    """Base exception for malformed process templates."""

    code: str = "TEMPLATE_DEFINITION_ERROR"


class MissingInitialStateError(TemplateDefinitionError):
    """Template has no state flagged as initial."""

    code: str = "MISSING_INITIAL_STATE"

    def __init__(self, template_id: int):
        self.template_id = template_id
        super().__init__(f"Template {template_id} defines no initial state")


class AmbiguousInitialStateError(TemplateDefinitionError):
    """Template has more than one state flagged as initial."""

    code: str = "AMBIGUOUS_INITIAL_STATE"

    def __init__(self, template_id: int, state_ids: tuple[int, ...]):
        self.template_id = template_id
        self.state_ids = state_ids
        super().__init__(
            f"Template {template_id} defines {len(state_ids)} initial states: "
            f"{list(state_ids)}"
        )


class NonDeterministicTransitionError(TemplateDefinitionError):
    """A (template, state, decision) triple already maps to another state."""

    code: str = "NON_DETERMINISTIC_TRANSITION"

    def __init__(
        self,
        template_id: int,
        state_id: int,
        decision_id: int,
        existing_next_state_id: int,
    ):
        self.template_id = template_id
        self.state_id = state_id
        self.decision_id = decision_id
        self.existing_next_state_id = existing_next_state_id
        super().__init__(
            f"Template {template_id}: state {state_id} + decision {decision_id} "
            f"already leads to state {existing_next_state_id}"
        )


# Predicates


class InvalidPredicateError(LifecycleKernelError):
    """Predicate definition sets more than one discriminator."""

    code: str = "INVALID_PREDICATE"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid predicate: {reason}")


# Immutability


class ImmutabilityViolationError(LifecycleKernelError):
    """Attempted to rewrite a recorded trajectory step."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify immutable {entity_type} {entity_id}: {reason}"
        )


# Storage


class StorageFaultError(LifecycleKernelError):
    """
    The underlying storage is unavailable or erroring.

    Terminal for the current unit of work.  The kernel never retries
    silently; retry policy belongs to the storage client.
    """

    code: str = "STORAGE_FAULT"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage fault during {operation}: {detail}")
