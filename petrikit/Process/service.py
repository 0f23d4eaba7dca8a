"""
Business logic for running processes.

:class:`ProcessService` owns every :class:`~petrikit.Process.computation.Computation`
in memory, reloads them from the configured store at construction and writes
a full snapshot after each mutating call. One re-entrant lock serializes all
operations, store write included, so the enabled-check and the firing of a
transition can never interleave with another mutation.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from ..exceptions import (
    ActiveComputationExists,
    EntityNotFound,
    InvalidComputationState,
    TransitionNotEnabled,
    Unauthorized,
)
from ..Net.elements import Transition
from ..Net.marking import MarkingData
from ..Net.petri_net import PetriNet
from .authorization import can_fire, check_fire_permission, is_net_admin
from .computation import Computation, ComputationObserver, ComputationStep
from .context import SystemContext
from .users import User

LOGGER = logging.getLogger(__name__)


class ProcessService:
    """
    Start, fire, query and delete computations.

    :param context: Users, nets, computation store and settings.
    :type context: SystemContext
    :param logger: Logger for lifecycle events; a module-level logger is
        used when ``None``.
    :type logger: Optional[logging.Logger]

    Examples
    --------
    .. code-block:: python

        ctx = SystemContext.in_memory()
        ctx.nets.register(net)
        service = ProcessService(ctx)
        comp = service.start_new_computation(user.id, net.id)
        for t in service.get_available_transitions(comp.id, user.id):
            service.fire_transition(comp.id, t.id, user.id)
            break
    """

    def __init__(
        self, context: SystemContext, *, logger: Optional[logging.Logger] = None
    ) -> None:
        self.context = context
        self.logger = logger or LOGGER
        self._lock = threading.RLock()
        self._computations: Dict[str, Computation] = dict(
            context.computation_store.load_all()
        )
        self.logger.debug("ProcessService ready with %d computations", len(self._computations))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _persist(self) -> None:
        # Memory stays authoritative when the write fails.
        try:
            self.context.computation_store.save_all(self._computations)
        except OSError:
            self.logger.exception("Saving computations failed; in-memory state kept")

    def _require_user(self, user_id: str) -> User:
        user = self.context.users.get(user_id)
        if user is None:
            raise EntityNotFound(f"User not found: {user_id}")
        return user

    def _require_net(self, net_id: str) -> PetriNet:
        net = self.context.nets.get(net_id)
        if net is None:
            raise EntityNotFound(f"PetriNet not found: {net_id}")
        return net

    def _require_computation(self, computation_id: str) -> Computation:
        comp = self._computations.get(computation_id)
        if comp is None:
            raise EntityNotFound(f"Computation not found: {computation_id}")
        return comp

    @staticmethod
    def _require_transition(net: PetriNet, transition_id: str) -> Transition:
        transition = net.transitions.get(transition_id)
        if transition is None:
            raise EntityNotFound(f"Transition not found: {transition_id}")
        return transition

    @staticmethod
    def _may_act_on(comp: Computation, user: User, net: PetriNet) -> bool:
        return comp.user_id == user.id or is_net_admin(user, net)

    def _has_active(self, user_id: str, net_id: str) -> bool:
        return any(
            c.user_id == user_id and c.net_id == net_id and c.is_active
            for c in self._computations.values()
        )

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------
    def start_new_computation(self, user_id: str, net_id: str) -> Computation:
        """
        Subscribe a user to a net by starting a new computation.

        The bootstrap step holds exactly one token in the initial place.

        :param user_id: Id of the user starting the process.
        :param net_id: Id of the net to run.
        :returns: The new ACTIVE computation.
        :rtype: Computation
        :raises EntityNotFound: If the user or the net does not exist.
        :raises Unauthorized: If an administrator targets their own net.
        :raises ActiveComputationExists: If the user already runs this net.
        :raises InvalidComputationState: If the net has no initial place.
        """
        with self._lock:
            user = self._require_user(user_id)
            net = self._require_net(net_id)
            if is_net_admin(user, net):
                raise Unauthorized("Admin cannot start computation of his own net")
            if self._has_active(user.id, net.id):
                raise ActiveComputationExists()
            initial_place_id = net.initial_place_id
            if initial_place_id is None:
                raise InvalidComputationState(
                    "Could not start net: initialPlace was not defined"
                )

            comp = Computation(net.id, user.id)
            comp.add_step(
                ComputationStep(comp.id, None, MarkingData({initial_place_id: 1}))
            )
            self._computations[comp.id] = comp
            self._persist()
            self.logger.info("User %s started computation %s on net %s", user.id, comp.id, net.id)
            return comp

    def fire_transition(
        self, computation_id: str, transition_id: str, user_id: str
    ) -> ComputationStep:
        """
        Fire a transition in a running computation.

        Checks run in order: existence of computation, user, net and
        transition; ACTIVE status; caller is the owner or the net's
        administrator; role-tag authorization; enabled under the current
        marking. On success the new step is appended, the computation is
        completed when the final place holds a token, observers are notified
        once, and the snapshot is saved. An exception raised by an observer
        propagates after the step, the completion and the save have been
        applied.

        :param computation_id: Computation to advance.
        :param transition_id: Transition to fire.
        :param user_id: Acting user.
        :returns: The appended step.
        :rtype: ComputationStep
        :raises EntityNotFound: For an unknown computation, user, net or transition.
        :raises InvalidComputationState: If the computation is not active or has no steps.
        :raises Unauthorized: If the caller may not fire this transition.
        :raises TransitionNotEnabled: If input places lack tokens.
        """
        with self._lock:
            comp = self._require_computation(computation_id)
            user = self._require_user(user_id)
            net = self._require_net(comp.net_id)
            transition = self._require_transition(net, transition_id)

            if not comp.is_active:
                raise InvalidComputationState("Computation is not active")
            if not self._may_act_on(comp, user, net):
                raise Unauthorized("User is not owner or admin")
            check_fire_permission(user, net, transition)

            current = comp.current_marking
            if not net.is_enabled(transition.id, current):
                raise TransitionNotEnabled(
                    f"Transition {transition.name} is not enabled (insufficient tokens)"
                )
            new_marking = net.fire(transition.id, current)

            step = ComputationStep(comp.id, transition.id, new_marking)
            final_place_id = net.final_place_id
            reached_final = (
                final_place_id is not None and new_marking.tokens(final_place_id) > 0
            )
            # Observers run last inside add_step; the snapshot is written even if one raises.
            try:
                comp.add_step(step, complete=reached_final)
            finally:
                self._persist()
            if reached_final:
                self.logger.info("Computation %s completed", comp.id)
            return step

    def delete_computation(self, computation_id: str, user_id: str) -> None:
        """
        Delete a computation.

        Unknown ids are ignored. The owner may always delete. Any administrator
        may delete as well unless ``settings.restrict_admin_delete_to_net_owner``
        is set, in which case only the administrator owning the net may.

        :raises EntityNotFound: If the user does not exist.
        :raises Unauthorized: If the user may not delete the computation.
        """
        with self._lock:
            comp = self._computations.get(computation_id)
            if comp is None:
                return
            user = self._require_user(user_id)
            net = self.context.nets.get(comp.net_id)

            is_owner = comp.user_id == user.id
            if self.context.settings.restrict_admin_delete_to_net_owner:
                admin_allowed = net is not None and is_net_admin(user, net)
            else:
                admin_allowed = net is not None and user.is_admin
                if admin_allowed and not is_owner and not is_net_admin(user, net):
                    self.logger.warning(
                        "Administrator %s deletes computation %s on net %s owned by %s",
                        user.id, comp.id, net.id, net.admin_id,
                    )
            if not (is_owner or admin_allowed):
                raise Unauthorized("User is not owner or admin")

            del self._computations[computation_id]
            self._persist()
            self.logger.info("Computation %s deleted by %s", computation_id, user.id)

    def delete_computations_for_net(self, net_id: str, admin_id: str) -> int:
        """
        Remove every computation running on a net, e.g. before withdrawing it.

        :param net_id: Net whose computations are removed.
        :param admin_id: Must be the administrator owning the net.
        :returns: Number of deleted computations.
        :raises EntityNotFound: If the user or the net does not exist.
        :raises Unauthorized: If ``admin_id`` does not own the net.
        """
        with self._lock:
            user = self._require_user(admin_id)
            net = self._require_net(net_id)
            if not is_net_admin(user, net):
                raise Unauthorized("Only the administrator of the net can remove its computations")
            doomed = [cid for cid, c in self._computations.items() if c.net_id == net_id]
            for cid in doomed:
                del self._computations[cid]
            if doomed:
                self._persist()
            return len(doomed)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_available_transitions(self, computation_id: str, user_id: str) -> List[Transition]:
        """
        Transitions the user can fire right now.

        Enabled transitions that fail authorization are left out rather than
        reported. An inactive computation, or a caller who is neither its
        owner nor the net administrator, yields an empty list.

        Unknown ids are not folded into the empty result: callers listing
        transitions for a possibly stale computation or user id must catch
        :class:`~petrikit.exceptions.EntityNotFound`.

        :raises EntityNotFound: If the computation, user or net does not exist.
        """
        with self._lock:
            comp = self._require_computation(computation_id)
            user = self._require_user(user_id)
            net = self._require_net(comp.net_id)
            if not comp.is_active or comp.last_step is None:
                return []
            if not self._may_act_on(comp, user, net):
                return []
            marking = comp.current_marking
            return [t for t in net.enabled_transitions(marking) if can_fire(user, net, t)]

    def get_enabled_transitions(self, computation_id: str) -> List[Transition]:
        """
        Transitions enabled by the current marking, whoever may fire them.

        :raises EntityNotFound: If the computation or its net does not exist.
        """
        with self._lock:
            comp = self._require_computation(computation_id)
            net = self._require_net(comp.net_id)
            if comp.last_step is None:
                return []
            return net.enabled_transitions(comp.current_marking)

    def get_computation_by_id(self, computation_id: str) -> Optional[Computation]:
        with self._lock:
            return self._computations.get(computation_id)

    def get_computations_for_admin(self, admin_id: str) -> List[Computation]:
        """Computations of all users on the nets created by ``admin_id``."""
        with self._lock:
            out: List[Computation] = []
            for comp in self._computations.values():
                net = self.context.nets.get(comp.net_id)
                if net is not None and net.admin_id == admin_id:
                    out.append(comp)
            return out

    def get_computations_for_user(self, user_id: str) -> List[Computation]:
        with self._lock:
            return [c for c in self._computations.values() if c.user_id == user_id]

    def get_available_nets_for_user(self, user_id: str) -> List[PetriNet]:
        """Nets the user may subscribe to: every net except the ones they own."""
        if self.context.users.get(user_id) is None:
            return []
        return [n for n in self.context.nets.all() if n.admin_id != user_id]

    def has_active_computations(self, net_id: str) -> bool:
        """Whether any ACTIVE computation runs on ``net_id``."""
        with self._lock:
            return any(c.net_id == net_id and c.is_active for c in self._computations.values())

    def attach_observer(self, computation_id: str, observer: ComputationObserver) -> Computation:
        """
        Register ``observer`` on a computation and return the computation.

        :raises EntityNotFound: If the computation does not exist.
        """
        with self._lock:
            comp = self._require_computation(computation_id)
            comp.attach(observer)
            return comp

    def __len__(self) -> int:
        return len(self._computations)
