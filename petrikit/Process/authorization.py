"""
Who may fire a transition.

The rule is selected by the transition's role tag through a fixed table:

* ``ADMIN`` transitions can only be fired by the administrator who created
  the net.
* ``USER`` transitions can be fired by anyone except that administrator.
"""

from __future__ import annotations

from typing import Callable, Dict

from ..exceptions import Unauthorized
from ..Net.elements import Transition, TransitionRole
from ..Net.petri_net import PetriNet
from .users import User


def is_net_admin(user: User, net: PetriNet) -> bool:
    return user.is_admin and net.admin_id == user.id


def _admin_rule(user: User, net: PetriNet) -> None:
    if not is_net_admin(user, net):
        raise Unauthorized(
            "You are not authorized to fire this Administrator-designated transition."
        )


def _user_rule(user: User, net: PetriNet) -> None:
    if is_net_admin(user, net):
        raise Unauthorized(
            "Administrator cannot execute user transitions on their own net."
        )


_RULES: Dict[TransitionRole, Callable[[User, PetriNet], None]] = {
    TransitionRole.ADMIN: _admin_rule,
    TransitionRole.USER: _user_rule,
}


def check_fire_permission(user: User, net: PetriNet, transition: Transition) -> None:
    """
    Apply the rule matching ``transition.role``.

    :param user: Acting user.
    :param net: Net the transition belongs to.
    :param transition: Transition about to fire.
    :raises Unauthorized: If the rule denies the firing.
    """
    _RULES[transition.role](user, net)


def can_fire(user: User, net: PetriNet, transition: Transition) -> bool:
    try:
        check_fire_permission(user, net, transition)
    except Unauthorized:
        return False
    return True
