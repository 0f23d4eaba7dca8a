from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from ..Net.elements import Arc, Place, Transition, TransitionRole
from ..Net.marking import MarkingData
from ..Net.petri_net import PetriNet
from ..Process.computation import Computation, ComputationStatus, ComputationStep
from ..Process.users import User, UserRole

__all__ = [
    "net_to_dict",
    "net_from_dict",
    "step_to_dict",
    "step_from_dict",
    "computation_to_dict",
    "computation_from_dict",
    "user_to_dict",
    "user_from_dict",
]


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


# ---------------------------------------------------------------------------
# Nets
# ---------------------------------------------------------------------------


def net_to_dict(net: PetriNet) -> Dict[str, Any]:
    """
    Plain-data representation of a net, suitable for JSON.

    :param net: Net to encode.
    :type net: PetriNet
    :returns: Dictionary with header fields and lists of places, transitions
        and arcs.
    :rtype: Dict[str, Any]
    """
    return {
        "id": net.id,
        "name": net.name,
        "adminId": net.admin_id,
        "dateCreated": _ts(net.created_at),
        "initialPlaceId": net.initial_place_id,
        "finalPlaceId": net.final_place_id,
        "places": [
            {"id": p.id, "name": p.name, "tokens": p.tokens} for p in net.places.values()
        ],
        "transitions": [
            {"id": t.id, "name": t.name, "type": t.role.value}
            for t in net.transitions.values()
        ],
        "arcs": [
            {
                "id": a.id,
                "sourceId": a.source_id,
                "targetId": a.target_id,
                "weight": a.weight,
            }
            for a in net.arcs.values()
        ],
    }


def net_from_dict(data: Dict[str, Any]) -> PetriNet:
    """
    Rebuild a net from :func:`net_to_dict` output.

    Elements go through the regular ``add_*`` operations, so a tampered
    document fails with the same errors as an invalid edit. Designations are
    applied after the arcs.

    :param data: Encoded net.
    :type data: Dict[str, Any]
    :returns: Reconstructed net.
    :rtype: PetriNet
    :raises KeyError: If a mandatory field is missing.
    :raises StructuralViolation: If the encoded structure is invalid.
    """
    net = PetriNet(
        data["name"],
        data["adminId"],
        id=data["id"],
        created_at=_parse_ts(data.get("dateCreated")),
    )
    for p in data.get("places", []):
        net.add_place(Place(net.id, p["name"], tokens=p.get("tokens", 0), id=p["id"]))
    for t in data.get("transitions", []):
        role = TransitionRole(t.get("type", TransitionRole.USER.value))
        net.add_transition(Transition(net.id, t["name"], role=role, id=t["id"]))
    for a in data.get("arcs", []):
        net.add_arc(
            Arc(net.id, a["sourceId"], a["targetId"], weight=a.get("weight", 1), id=a["id"])
        )
    if data.get("initialPlaceId"):
        net.set_initial(data["initialPlaceId"])
    if data.get("finalPlaceId"):
        net.set_final(data["finalPlaceId"])
    return net


# ---------------------------------------------------------------------------
# Computations
# ---------------------------------------------------------------------------


def step_to_dict(step: ComputationStep) -> Dict[str, Any]:
    return {
        "id": step.id,
        "computationId": step.computation_id,
        "transitionId": step.transition_id,
        "timeStamp": _ts(step.timestamp),
        "markingData": {"tokensPerPlace": step.marking.to_dict()},
    }


def step_from_dict(data: Dict[str, Any]) -> ComputationStep:
    return ComputationStep(
        computation_id=data["computationId"],
        transition_id=data.get("transitionId"),
        marking=MarkingData(data.get("markingData", {}).get("tokensPerPlace", {})),
        timestamp=_parse_ts(data["timeStamp"]),
        id=data["id"],
    )


def computation_to_dict(computation: Computation) -> Dict[str, Any]:
    """Plain-data representation of a computation and its history (observers excluded)."""
    return {
        "id": computation.id,
        "petriNetId": computation.net_id,
        "userId": computation.user_id,
        "status": computation.status.value,
        "startTime": _ts(computation.started_at),
        "endTime": _ts(computation.ended_at),
        "steps": [step_to_dict(s) for s in computation.steps],
    }


def computation_from_dict(data: Dict[str, Any]) -> Computation:
    """
    Rebuild a computation from :func:`computation_to_dict` output.

    :raises KeyError: If a mandatory field is missing.
    :raises MismatchedOwner: If a stored step names another computation.
    """
    return Computation(
        data["petriNetId"],
        data["userId"],
        id=data["id"],
        status=ComputationStatus(data.get("status", ComputationStatus.ACTIVE.value)),
        started_at=_parse_ts(data.get("startTime")),
        ended_at=_parse_ts(data.get("endTime")),
        steps=[step_from_dict(s) for s in data.get("steps", [])],
    )


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def user_to_dict(user: User) -> Dict[str, str]:
    return {"id": user.id, "email": user.email, "role": user.role.value}


def user_from_dict(data: Dict[str, Any]) -> User:
    return User(email=str(data["email"]), role=UserRole(str(data["role"])), id=str(data["id"]))
