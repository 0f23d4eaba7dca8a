"""
Petri net definition model and firing rule.

A :class:`PetriNet` is an arena of places, transitions and arcs keyed by id.
Structural invariants are re-checked on every mutation, and :meth:`PetriNet.validate`
checks the global ones (unique initial and final place) on a
:class:`networkx.DiGraph` view of the net.

The firing rule is pure: :meth:`PetriNet.fire` never mutates the marking it
receives and returns a new :class:`~petrikit.Net.marking.MarkingData`.
"""

from __future__ import annotations

import logging
from datetime import datetime
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Union

import networkx as nx

from ..exceptions import (
    EntityNotFound,
    MismatchedOwner,
    StructuralViolation,
    TransitionNotEnabled,
    UnknownTransition,
)
from .elements import NET_PREFIX, Arc, Place, Transition, TransitionRole, new_id
from .marking import MarkingData

LOGGER = logging.getLogger(__name__)

PlaceRef = Union[Place, str]


class PetriNet:
    """
    Validated place/transition net owned by one administrator.

    :param name: Display name of the net.
    :type name: str
    :param admin_id: Id of the administrator who designed the net.
    :type admin_id: str
    :param id: Net id starting with ``"NP"``; generated when omitted.
    :type id: Optional[str]
    :param created_at: Creation timestamp; defaults to now.
    :type created_at: Optional[datetime]

    Examples
    --------
    .. code-block:: python

        net = PetriNet("Review", admin_id="ADM1")
        p0 = net.add_place(Place(net.id, "start"))
        p1 = net.add_place(Place(net.id, "end"))
        t = net.add_transition(Transition(net.id, "approve"))
        net.add_arc(Arc(net.id, p0.id, t.id))
        net.add_arc(Arc(net.id, t.id, p1.id))
        net.set_initial(p0)
        net.set_final(p1)
        net.validate()
    """

    def __init__(
        self,
        name: str,
        admin_id: str,
        *,
        id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> None:
        if not name:
            raise ValueError("PetriNet name must not be empty")
        if not admin_id:
            raise ValueError("PetriNet admin_id must not be empty")
        self.id: str = id or new_id(NET_PREFIX)
        self.name = name
        self.admin_id = admin_id
        self.created_at: datetime = created_at or datetime.now()
        self.initial_place_id: Optional[str] = None
        self.final_place_id: Optional[str] = None
        self._places: Dict[str, Place] = {}
        self._transitions: Dict[str, Transition] = {}
        self._arcs: Dict[str, Arc] = {}

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------
    @property
    def places(self) -> Mapping[str, Place]:
        return MappingProxyType(self._places)

    @property
    def transitions(self) -> Mapping[str, Transition]:
        return MappingProxyType(self._transitions)

    @property
    def arcs(self) -> Mapping[str, Arc]:
        return MappingProxyType(self._arcs)

    @property
    def initial_place(self) -> Optional[Place]:
        if self.initial_place_id is None:
            return None
        return self._places.get(self.initial_place_id)

    @property
    def final_place(self) -> Optional[Place]:
        if self.final_place_id is None:
            return None
        return self._places.get(self.final_place_id)

    def get_place(self, place_id: str) -> Place:
        try:
            return self._places[place_id]
        except KeyError:
            raise EntityNotFound(f"Place not found: {place_id}") from None

    def get_transition(self, transition_id: str) -> Transition:
        try:
            return self._transitions[transition_id]
        except KeyError:
            raise UnknownTransition(f"Transition not found: {transition_id}") from None

    def get_arc(self, arc_id: str) -> Arc:
        try:
            return self._arcs[arc_id]
        except KeyError:
            raise EntityNotFound(f"Arc not found: {arc_id}") from None

    def has_element(self, element_id: str) -> bool:
        return element_id in self._places or element_id in self._transitions

    def has_arc_between(self, source_id: str, target_id: str) -> bool:
        return any(
            a.source_id == source_id and a.target_id == target_id
            for a in self._arcs.values()
        )

    def input_arcs(self, transition_id: str) -> List[Arc]:
        """Arcs place -> ``transition_id``."""
        return [a for a in self._arcs.values() if a.target_id == transition_id]

    def output_arcs(self, transition_id: str) -> List[Arc]:
        """Arcs ``transition_id`` -> place."""
        return [a for a in self._arcs.values() if a.source_id == transition_id]

    def is_empty(self) -> bool:
        return (
            not self._arcs
            and not self._transitions
            and self.initial_place_id is None
            and self.final_place_id is None
        )

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    def _check_owner(self, element: Union[Place, Transition, Arc]) -> None:
        if element.net_id != self.id:
            kind = type(element).__name__
            raise MismatchedOwner(f"{kind} belongs to another Petri net")

    def add_place(self, place: Place) -> Place:
        self._check_owner(place)
        if self.has_element(place.id):
            raise StructuralViolation(f"Place with this ID already exists: {place.id}")
        self._places[place.id] = place
        return place

    def add_transition(self, transition: Transition) -> Transition:
        self._check_owner(transition)
        if self.has_element(transition.id):
            raise StructuralViolation(
                f"Transition with this ID already exists: {transition.id}"
            )
        self._transitions[transition.id] = transition
        return transition

    def add_arc(self, arc: Arc) -> Arc:
        """
        Register an arc after checking every structural rule that involves it.

        :param arc: Arc to add; its endpoints must already be in the net.
        :type arc: Arc
        :returns: The added arc.
        :rtype: Arc
        :raises MismatchedOwner: If the arc carries another net's id.
        :raises StructuralViolation: For unknown endpoints, a non-bipartite
            connection, a duplicate id or duplicate connection, an existing
            inverse arc, an arc entering the initial place or an arc leaving
            the final place.
        """
        self._check_owner(arc)
        if not self.has_element(arc.source_id) or not self.has_element(arc.target_id):
            raise StructuralViolation("Invalid source or target ID")
        place_to_transition = arc.source_id in self._places and arc.target_id in self._transitions
        transition_to_place = arc.source_id in self._transitions and arc.target_id in self._places
        if not (place_to_transition or transition_to_place):
            raise StructuralViolation("You cannot connect elements of the same type!")
        if arc.id in self._arcs:
            raise StructuralViolation(f"Arc with this ID already exists: {arc.id}")
        if self.has_arc_between(arc.source_id, arc.target_id):
            raise StructuralViolation("Cannot add arc: an identical arc already exists")
        if self.has_arc_between(arc.target_id, arc.source_id):
            raise StructuralViolation("Cannot add arc: inverse arc already exists")
        if arc.target_id == self.initial_place_id:
            raise StructuralViolation("Cannot add incoming arcs to initial place")
        if arc.source_id == self.final_place_id:
            raise StructuralViolation("Cannot add outgoing arcs from final place")
        self._arcs[arc.id] = arc
        return arc

    def connect(self, source_id: str, target_id: str, weight: int = 1) -> Arc:
        """Create and add an arc between two elements of this net."""
        return self.add_arc(Arc(self.id, source_id, target_id, weight=weight))

    def set_initial(self, place: PlaceRef) -> None:
        """
        Designate the initial place.

        If the place was the final place, that designation is cleared.

        :raises StructuralViolation: If the place is not registered.
        """
        place_id = self._registered_place_id(place)
        if self.final_place_id == place_id:
            self.final_place_id = None
        self.initial_place_id = place_id

    def set_final(self, place: PlaceRef) -> None:
        """
        Designate the final place.

        If the place was the initial place, that designation is cleared.

        :raises StructuralViolation: If the place is not registered.
        """
        place_id = self._registered_place_id(place)
        if self.initial_place_id == place_id:
            self.initial_place_id = None
        self.final_place_id = place_id

    def _registered_place_id(self, place: PlaceRef) -> str:
        place_id = place.id if isinstance(place, Place) else place
        if place_id not in self._places:
            raise StructuralViolation("Place must be added to the net first")
        return place_id

    # ------------------------------------------------------------------
    # Design-time edits
    # ------------------------------------------------------------------
    def set_arc_weight(self, arc_id: str, weight: int) -> None:
        self.get_arc(arc_id).set_weight(weight)

    def set_transition_role(self, transition_id: str, role: TransitionRole) -> None:
        self.get_transition(transition_id).role = TransitionRole(role)

    def toggle_transition_role(self, transition_id: str) -> TransitionRole:
        return self.get_transition(transition_id).toggle_role()

    # ------------------------------------------------------------------
    # Removal (arcs first, then designations, then the element)
    # ------------------------------------------------------------------
    def remove_place(self, place_id: str) -> None:
        if place_id not in self._places:
            raise EntityNotFound(f"Place not found: {place_id}")
        self._remove_arcs_touching(place_id)
        if self.initial_place_id == place_id:
            self.initial_place_id = None
        if self.final_place_id == place_id:
            self.final_place_id = None
        del self._places[place_id]

    def remove_transition(self, transition_id: str) -> None:
        if transition_id not in self._transitions:
            raise EntityNotFound(f"Transition not found: {transition_id}")
        self._remove_arcs_touching(transition_id)
        del self._transitions[transition_id]

    def remove_arc(self, arc_id: str) -> None:
        self._arcs.pop(arc_id, None)

    def _remove_arcs_touching(self, element_id: str) -> None:
        doomed = [aid for aid, a in self._arcs.items() if a.touches(element_id)]
        for aid in doomed:
            del self._arcs[aid]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def to_digraph(self) -> nx.DiGraph:
        """
        Export the net to a bipartite NetworkX DiGraph.

        Nodes carry ``kind`` (``"place"`` / ``"transition"``), ``label`` and
        ``bipartite`` (0 for places, 1 for transitions); edges carry ``weight``
        and ``arc_id``.

        :returns: Directed graph with one node per element and one edge per arc.
        :rtype: networkx.DiGraph
        """
        G = nx.DiGraph(net_id=self.id, name=self.name)
        for pid, p in self._places.items():
            G.add_node(pid, kind="place", label=p.name, bipartite=0, tokens=p.tokens)
        for tid, t in self._transitions.items():
            G.add_node(tid, kind="transition", label=t.name, bipartite=1, role=t.role.value)
        for aid, a in self._arcs.items():
            G.add_edge(a.source_id, a.target_id, weight=a.weight, arc_id=aid)
        return G

    def validate(self) -> None:
        """
        Check that the net has exactly one initial and one final place and
        that both match their designations.

        :raises StructuralViolation: Naming the rule that broke.
        """
        G = self.to_digraph()
        self._validate_endpoint(G, self.initial_place_id, "initial", G.in_degree, "incoming")
        self._validate_endpoint(G, self.final_place_id, "final", G.out_degree, "outgoing")

    def _validate_endpoint(self, G, designated, label, degree, direction) -> None:
        if designated is None:
            raise StructuralViolation(f"{label}Place must be defined")
        candidates = [pid for pid in self._places if degree(pid) == 0]
        if len(candidates) != 1:
            raise StructuralViolation(
                f"There must be exactly one {label} place (Place with no {direction} arcs), "
                f"found: {len(candidates)}"
            )
        if candidates[0] != designated:
            raise StructuralViolation(
                f"The DEFINED {label} place does not match the {label} place of the net you designed."
            )

    def is_valid(self) -> bool:
        try:
            self.validate()
        except StructuralViolation:
            return False
        return True

    # ------------------------------------------------------------------
    # Firing rule
    # ------------------------------------------------------------------
    def default_marking(self) -> MarkingData:
        """Marking built from the design-time token counts of every place."""
        return MarkingData({pid: p.tokens for pid, p in self._places.items()})

    def is_enabled(self, transition_id: str, marking: Mapping[str, int]) -> bool:
        """
        Whether every input place holds at least the weight of its arc.

        :param transition_id: Transition to test.
        :param marking: Current marking (place id -> tokens; absent is 0).
        :returns: True if the transition may fire.
        :raises UnknownTransition: If the transition is not part of this net.
        """
        self.get_transition(transition_id)
        for arc in self.input_arcs(transition_id):
            if marking.get(arc.source_id, 0) < arc.weight:
                return False
        return True

    def enabled_transitions(self, marking: Mapping[str, int]) -> List[Transition]:
        return [t for tid, t in self._transitions.items() if self.is_enabled(tid, marking)]

    def fire(self, transition_id: str, marking: Mapping[str, int]) -> MarkingData:
        """
        Fire a transition and return the resulting marking.

        Input weights are subtracted and output weights added on a private
        copy; the caller's marking is left untouched whether or not the
        firing succeeds.

        :param transition_id: Transition to fire.
        :param marking: Marking before the firing.
        :returns: Marking after the firing.
        :rtype: MarkingData
        :raises UnknownTransition: If the transition is not part of this net.
        :raises TransitionNotEnabled: If some input place lacks tokens.
        """
        if not self.is_enabled(transition_id, marking):
            raise TransitionNotEnabled(
                f"Transition {self._transitions[transition_id].name} is not enabled "
                "(insufficient tokens)"
            )
        tokens: Dict[str, int] = {k: int(v) for k, v in marking.items()}
        for arc in self.input_arcs(transition_id):
            tokens[arc.source_id] = tokens.get(arc.source_id, 0) - arc.weight
        for arc in self.output_arcs(transition_id):
            tokens[arc.target_id] = tokens.get(arc.target_id, 0) + arc.weight
        result = MarkingData(tokens)
        LOGGER.debug("Fired %s: %r -> %r", transition_id, marking, result)
        return result

    def __repr__(self) -> str:
        return (
            f"PetriNet(id={self.id!r}, name={self.name!r}, places={len(self._places)}, "
            f"transitions={len(self._transitions)}, arcs={len(self._arcs)})"
        )
