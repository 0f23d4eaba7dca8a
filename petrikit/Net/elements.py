from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum

from ..exceptions import StructuralViolation

PLACE_PREFIX = "P"
TRANSITION_PREFIX = "T"
ARC_PREFIX = "A"
NET_PREFIX = "NP"


def new_id(prefix: str) -> str:
    """
    Generate a unique identifier tagged with the element kind.

    :param prefix: Kind prefix, e.g. ``"P"`` for places or ``"CO"`` for computations.
    :returns: ``prefix`` followed by a random UUID4.
    """
    return f"{prefix}{uuid.uuid4()}"


def is_place_id(element_id: str) -> bool:
    return element_id.startswith(PLACE_PREFIX)


def is_transition_id(element_id: str) -> bool:
    return element_id.startswith(TRANSITION_PREFIX)


class TransitionRole(str, Enum):
    """Who is allowed to fire a transition."""

    ADMIN = "ADMIN"
    USER = "USER"

    def toggled(self) -> "TransitionRole":
        return TransitionRole.USER if self is TransitionRole.ADMIN else TransitionRole.ADMIN


@dataclass
class Place:
    """
    Place node of a Petri net.

    :param net_id: Id of the owning net.
    :type net_id: str
    :param name: Display name.
    :type name: str
    :param tokens: Design-time default token count. Running computations keep
        their own :class:`~petrikit.Net.marking.MarkingData`.
    :type tokens: int
    :param id: Unique id starting with ``"P"``; generated when omitted.
    :type id: str
    """

    net_id: str
    name: str
    tokens: int = 0
    id: str = field(default_factory=lambda: new_id(PLACE_PREFIX))

    def __post_init__(self) -> None:
        if not is_place_id(self.id):
            raise StructuralViolation(f"Place id must start with {PLACE_PREFIX!r}: {self.id!r}")
        self.set_tokens(self.tokens)

    def set_tokens(self, count: int) -> None:
        count = int(count)
        if count < 0:
            raise ValueError("Token count cannot be negative.")
        self.tokens = count

    def __repr__(self) -> str:
        return f"Place(id={self.id!r}, name={self.name!r}, tokens={self.tokens})"


@dataclass
class Transition:
    """
    Transition node of a Petri net.

    :param net_id: Id of the owning net.
    :type net_id: str
    :param name: Display name.
    :type name: str
    :param role: Role tag selecting the authorization rule.
    :type role: TransitionRole
    :param id: Unique id starting with ``"T"``; generated when omitted.
    :type id: str
    """

    net_id: str
    name: str
    role: TransitionRole = TransitionRole.USER
    id: str = field(default_factory=lambda: new_id(TRANSITION_PREFIX))

    def __post_init__(self) -> None:
        if not is_transition_id(self.id):
            raise StructuralViolation(
                f"Transition id must start with {TRANSITION_PREFIX!r}: {self.id!r}"
            )
        self.role = TransitionRole(self.role)

    def toggle_role(self) -> TransitionRole:
        """Flip between ADMIN and USER and return the new tag."""
        self.role = self.role.toggled()
        return self.role

    def __repr__(self) -> str:
        return f"Transition(id={self.id!r}, name={self.name!r}, role={self.role.value})"


@dataclass
class Arc:
    """
    Weighted directed arc, either place -> transition or transition -> place.

    The bipartite rule is checked on the id prefixes before the arc exists,
    so a same-kind connection never reaches a net.

    :param net_id: Id of the owning net.
    :type net_id: str
    :param source_id: Id of the source place or transition.
    :type source_id: str
    :param target_id: Id of the target transition or place.
    :type target_id: str
    :param weight: Tokens consumed or produced per firing, positive.
    :type weight: int
    :param id: Unique id starting with ``"A"``; generated when omitted.
    :type id: str
    :raises StructuralViolation: On a place-place or transition-transition
        connection, or a non-positive weight.
    """

    net_id: str
    source_id: str
    target_id: str
    weight: int = 1
    id: str = field(default_factory=lambda: new_id(ARC_PREFIX))

    def __post_init__(self) -> None:
        if not self._is_valid_connection(self.source_id, self.target_id):
            raise StructuralViolation("You cannot connect elements of the same type!")
        self.set_weight(self.weight)

    @staticmethod
    def _is_valid_connection(source_id: str, target_id: str) -> bool:
        return (is_place_id(source_id) and is_transition_id(target_id)) or (
            is_transition_id(source_id) and is_place_id(target_id)
        )

    def set_weight(self, weight: int) -> None:
        if isinstance(weight, bool) or int(weight) != weight or weight < 1:
            raise StructuralViolation(f"Arc weight must be a positive integer, got {weight!r}")
        self.weight = int(weight)

    @property
    def is_input(self) -> bool:
        """True for place -> transition arcs."""
        return is_place_id(self.source_id)

    @property
    def is_output(self) -> bool:
        """True for transition -> place arcs."""
        return is_transition_id(self.source_id)

    @property
    def place_id(self) -> str:
        return self.source_id if self.is_input else self.target_id

    @property
    def transition_id(self) -> str:
        return self.target_id if self.is_input else self.source_id

    def touches(self, element_id: str) -> bool:
        return element_id in (self.source_id, self.target_id)

    def __repr__(self) -> str:
        return f"Arc({self.source_id} -[{self.weight}]-> {self.target_id})"
