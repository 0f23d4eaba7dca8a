"""
Structural and behavioural helpers for :class:`~petrikit.Net.petri_net.PetriNet`.

* :func:`incidence_matrix`: place x transition token-change matrix
  ``C = Post - Pre``, the Petri net analogue of a stoichiometric matrix.
* :func:`explore_reachable`: bounded breadth-first exploration of the
  markings reachable from a start marking, returned as a NetworkX graph.

References
----------
- Murata (1989), Proc. IEEE, Petri nets: Properties, analysis and applications.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Dict, List, Mapping, Optional, Sequence, Tuple

import networkx as nx
import numpy as np

from .marking import MarkingData
from .petri_net import PetriNet

LOGGER = logging.getLogger(__name__)

__all__ = [
    "incidence_matrix",
    "marking_vector",
    "explore_reachable",
    "is_final_reachable",
    "transition_counts",
]


def incidence_matrix(net: PetriNet) -> Tuple[np.ndarray, List[str], List[str]]:
    """
    Build the place x transition incidence matrix of a net.

    ``C[i, j]`` is the net token change of place ``i`` when transition ``j``
    fires once: output arc weight minus input arc weight.

    :param net: Net to encode.
    :type net: PetriNet
    :returns: ``(C, place_ids, transition_ids)`` where the id lists give the
        row and column order.
    :rtype: Tuple[numpy.ndarray, List[str], List[str]]
    """
    place_ids = list(net.places)
    transition_ids = list(net.transitions)
    p_index = {pid: i for i, pid in enumerate(place_ids)}
    t_index = {tid: j for j, tid in enumerate(transition_ids)}

    C = np.zeros((len(place_ids), len(transition_ids)), dtype=int)
    for arc in net.arcs.values():
        i = p_index[arc.place_id]
        j = t_index[arc.transition_id]
        if arc.is_input:
            C[i, j] -= arc.weight
        else:
            C[i, j] += arc.weight
    return C, place_ids, transition_ids


def marking_vector(
    marking: Mapping[str, int], place_ids: Sequence[str]
) -> np.ndarray:
    """
    Dense token vector of ``marking`` in the row order of ``place_ids``.

    :param marking: Marking to encode.
    :param place_ids: Place order, typically from :func:`incidence_matrix`.
    :returns: Integer vector of length ``len(place_ids)``.
    """
    return np.array([marking.get(pid, 0) for pid in place_ids], dtype=int)


def explore_reachable(
    net: PetriNet,
    marking: Optional[Mapping[str, int]] = None,
    *,
    max_states: int = 10_000,
) -> nx.DiGraph:
    """
    Enumerate reachable markings breadth-first.

    Nodes are :class:`MarkingData` instances (hashable); each edge carries the
    ``transition`` id that moves one marking to the next. Exploration stops
    once ``max_states`` markings have been discovered and the graph attribute
    ``truncated`` is set.

    :param net: Net to explore.
    :type net: PetriNet
    :param marking: Start marking; defaults to one token in the initial place.
    :type marking: Optional[Mapping[str, int]]
    :param max_states: Upper bound on discovered markings.
    :type max_states: int
    :returns: Reachability graph with graph attributes ``start`` and ``truncated``.
    :rtype: networkx.DiGraph
    :raises ValueError: If no start marking is given and the net has no
        initial place, or ``max_states`` is not positive.
    """
    if max_states < 1:
        raise ValueError("max_states must be positive")
    if marking is None:
        if net.initial_place_id is None:
            raise ValueError("Net has no initial place; pass an explicit marking")
        marking = {net.initial_place_id: 1}
    start = MarkingData(marking)

    G = nx.DiGraph(start=start, truncated=False)
    G.add_node(start)
    queue: Deque[MarkingData] = deque([start])
    while queue:
        current = queue.popleft()
        for transition in net.enabled_transitions(current):
            nxt = net.fire(transition.id, current)
            if nxt not in G:
                if G.number_of_nodes() >= max_states:
                    G.graph["truncated"] = True
                    LOGGER.debug("Reachability exploration truncated at %d states", max_states)
                    return G
                G.add_node(nxt)
                queue.append(nxt)
            G.add_edge(current, nxt, transition=transition.id)
    return G


def is_final_reachable(
    net: PetriNet,
    marking: Optional[Mapping[str, int]] = None,
    *,
    max_states: int = 10_000,
) -> bool:
    """
    Whether some reachable marking puts a token in the final place.

    :param net: Net to explore; must have a designated final place.
    :param marking: Start marking (see :func:`explore_reachable`).
    :param max_states: Upper bound on explored markings.
    :returns: True if a marking with a token in the final place was found.
    :raises ValueError: If the net has no final place.
    """
    final_id = net.final_place_id
    if final_id is None:
        raise ValueError("Net has no final place")
    G = explore_reachable(net, marking, max_states=max_states)
    return any(m.tokens(final_id) > 0 for m in G.nodes)


def transition_counts(path: Sequence[str], transition_ids: Sequence[str]) -> np.ndarray:
    """
    Parikh vector of a firing sequence.

    Combined with :func:`incidence_matrix` this gives the state equation
    ``M' = M + C @ counts``.

    :param path: Fired transition ids in order.
    :param transition_ids: Column order, typically from :func:`incidence_matrix`.
    :returns: Integer vector with the firing count of each transition.
    """
    index: Dict[str, int] = {tid: j for j, tid in enumerate(transition_ids)}
    counts = np.zeros(len(transition_ids), dtype=int)
    for tid in path:
        counts[index[tid]] += 1
    return counts
