from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Stable, caller-visible classification of every petrikit failure."""

    ENTITY_NOT_FOUND = "entity_not_found"
    UNAUTHORIZED = "unauthorized"
    INVALID_COMPUTATION_STATE = "invalid_computation_state"
    ACTIVE_COMPUTATION_EXISTS = "active_computation_exists"
    TRANSITION_NOT_ENABLED = "transition_not_enabled"
    STRUCTURAL_VIOLATION = "structural_violation"
    MISMATCHED_OWNER = "mismatched_owner"


class PetriError(RuntimeError):
    """Base class for all petrikit-specific errors."""

    kind: ErrorKind
    default_message = "Petri net operation failed"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class EntityNotFound(PetriError, LookupError):
    """Raised when a referenced user, net, transition or computation does not exist."""

    kind = ErrorKind.ENTITY_NOT_FOUND
    default_message = "Could not find what you were looking for"


class UnknownTransition(EntityNotFound):
    """Raised by the firing rule for a transition id that is not part of the net."""


class Unauthorized(PetriError):
    """Raised when the caller lacks permission for the requested action."""

    kind = ErrorKind.UNAUTHORIZED
    default_message = "You do not have permission to perform this action"


class InvalidComputationState(PetriError):
    """Raised for actions against a computation in the wrong lifecycle state."""

    kind = ErrorKind.INVALID_COMPUTATION_STATE
    default_message = "Computation is not active"


class ActiveComputationExists(PetriError):
    """Raised when a user already runs an active computation on the same net."""

    kind = ErrorKind.ACTIVE_COMPUTATION_EXISTS
    default_message = "User already has an active computation for this net"


class TransitionNotEnabled(PetriError):
    """Raised when the marking lacks the tokens required to fire a transition."""

    kind = ErrorKind.TRANSITION_NOT_ENABLED
    default_message = "Transition not enabled: insufficient token/s in input Place"


class StructuralViolation(PetriError, ValueError):
    """Raised when a net-definition invariant would be broken."""

    kind = ErrorKind.STRUCTURAL_VIOLATION
    default_message = "Petri net structure is invalid"


class MismatchedOwner(PetriError, ValueError):
    """Raised when a child entity is attached to a parent it does not belong to."""

    kind = ErrorKind.MISMATCHED_OWNER
    default_message = "Element does not belong to this owner"
