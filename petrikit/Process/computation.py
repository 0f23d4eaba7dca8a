from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Protocol, Tuple, runtime_checkable

from ..exceptions import InvalidComputationState, MismatchedOwner
from ..Net.elements import new_id
from ..Net.marking import MarkingData

LOGGER = logging.getLogger(__name__)

COMPUTATION_PREFIX = "CO"
STEP_PREFIX = "S"


class ComputationStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"

    @property
    def is_active(self) -> bool:
        return self is ComputationStatus.ACTIVE


@runtime_checkable
class ComputationObserver(Protocol):
    """Anything interested in state changes of a :class:`Computation`."""

    def on_computation_changed(self, computation: "Computation") -> None: ...


@dataclass(frozen=True)
class ComputationStep:
    """
    One entry of a computation's history.

    :param computation_id: Id of the owning computation.
    :type computation_id: str
    :param transition_id: Transition that produced the step, ``None`` for the
        bootstrap step.
    :type transition_id: Optional[str]
    :param marking: Marking reached after the step.
    :type marking: MarkingData
    :param timestamp: When the step was recorded.
    :type timestamp: datetime
    :param id: Step id starting with ``"S"``.
    :type id: str
    """

    computation_id: str
    transition_id: Optional[str]
    marking: MarkingData
    timestamp: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: new_id(STEP_PREFIX))

    def __post_init__(self) -> None:
        if not isinstance(self.marking, MarkingData):
            object.__setattr__(self, "marking", MarkingData(self.marking))

    @property
    def is_initial(self) -> bool:
        return self.transition_id is None


class Computation:
    """
    A single execution of a Petri net by one user.

    The history is append-only and its order is the execution order. The
    status moves once, from ACTIVE to COMPLETED. Every change is reported
    synchronously to the attached observers, in attachment order.

    :param net_id: Id of the net being executed.
    :type net_id: str
    :param user_id: Id of the user who started the computation.
    :type user_id: str
    :param id: Computation id starting with ``"CO"``; generated when omitted.
    :type id: Optional[str]
    :param status: Lifecycle status, ACTIVE for new computations.
    :type status: ComputationStatus
    :param started_at: Start timestamp; defaults to now.
    :type started_at: Optional[datetime]
    :param ended_at: Completion timestamp, if completed.
    :type ended_at: Optional[datetime]
    :param steps: History to restore, e.g. when loading from storage.
    :type steps: Optional[Iterable[ComputationStep]]
    """

    def __init__(
        self,
        net_id: str,
        user_id: str,
        *,
        id: Optional[str] = None,
        status: ComputationStatus = ComputationStatus.ACTIVE,
        started_at: Optional[datetime] = None,
        ended_at: Optional[datetime] = None,
        steps: Optional[Iterable[ComputationStep]] = None,
    ) -> None:
        if not net_id:
            raise ValueError("net_id must not be empty")
        if not user_id:
            raise ValueError("user_id must not be empty")
        self.id: str = id or new_id(COMPUTATION_PREFIX)
        self.net_id = net_id
        self.user_id = user_id
        self.status = ComputationStatus(status)
        self.started_at: datetime = started_at or datetime.now()
        self.ended_at = ended_at
        self._steps: List[ComputationStep] = []
        self._observers: List[ComputationObserver] = []
        for step in steps or ():
            self._check_step(step)
            self._steps.append(step)

    # ---- observers ----
    def attach(self, observer: ComputationObserver) -> None:
        self._observers.append(observer)

    def detach(self, observer: ComputationObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    @property
    def observers(self) -> Tuple[ComputationObserver, ...]:
        return tuple(self._observers)

    def _notify_observers(self) -> None:
        for observer in list(self._observers):
            observer.on_computation_changed(self)

    # ---- lifecycle ----
    @property
    def is_active(self) -> bool:
        return self.status.is_active

    def complete(self) -> None:
        """
        Mark the computation as completed.

        :raises InvalidComputationState: If it was already completed.
        """
        self._mark_completed()
        self._notify_observers()

    def _mark_completed(self) -> None:
        if not self.status.is_active:
            raise InvalidComputationState("Computation has already been completed")
        self.status = ComputationStatus.COMPLETED
        self.ended_at = datetime.now()
        LOGGER.debug("Computation %s completed", self.id)

    # ---- history ----
    def _check_step(self, step: ComputationStep) -> None:
        if step.computation_id != self.id:
            raise MismatchedOwner("Step does not belong to this computation")

    def add_step(self, step: ComputationStep, *, complete: bool = False) -> None:
        """
        Append a step to the history, optionally completing the computation.

        Both state changes are applied before observers are notified, once.

        :param step: Step to append.
        :param complete: Also mark the computation as completed.
        :raises MismatchedOwner: If ``step.computation_id`` is not this computation.
        :raises InvalidComputationState: If ``complete`` is set on a completed
            computation.
        """
        self._check_step(step)
        if complete and not self.status.is_active:
            raise InvalidComputationState("Computation has already been completed")
        self._steps.append(step)
        if complete:
            self._mark_completed()
        self._notify_observers()

    @property
    def steps(self) -> Tuple[ComputationStep, ...]:
        return tuple(self._steps)

    @property
    def initial_step(self) -> Optional[ComputationStep]:
        for step in self._steps:
            if step.transition_id is None:
                return step
        return None

    @property
    def last_step(self) -> Optional[ComputationStep]:
        return self._steps[-1] if self._steps else None

    @property
    def current_marking(self) -> MarkingData:
        """
        Marking of the most recent step.

        :raises InvalidComputationState: If the computation has no steps yet.
        """
        last = self.last_step
        if last is None:
            raise InvalidComputationState("Computation has no steps yet")
        return last.marking

    def __repr__(self) -> str:
        return (
            f"Computation(id={self.id!r}, net_id={self.net_id!r}, user_id={self.user_id!r}, "
            f"status={self.status.value}, steps={len(self._steps)})"
        )
