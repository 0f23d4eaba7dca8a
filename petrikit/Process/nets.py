from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from ..Net.petri_net import PetriNet

LOGGER = logging.getLogger(__name__)


class NetDirectory:
    """
    Registry of validated nets, keyed by net id.

    Only nets that pass :meth:`PetriNet.validate` are accepted, so the
    orchestration layer can rely on a unique initial and final place.

    :param nets: Nets to register up front.
    :type nets: Optional[Iterable[PetriNet]]
    """

    def __init__(self, nets: Optional[Iterable[PetriNet]] = None) -> None:
        self._nets: Dict[str, PetriNet] = {}
        for net in nets or ():
            self.register(net)

    def register(self, net: PetriNet) -> PetriNet:
        """
        Validate and store a net, replacing any previous version with the same id.

        :raises StructuralViolation: If the net fails validation.
        """
        net.validate()
        if net.id in self._nets:
            LOGGER.debug("Replacing net %s", net.id)
        self._nets[net.id] = net
        return net

    def remove(self, net_id: str) -> Optional[PetriNet]:
        return self._nets.pop(net_id, None)

    def get(self, net_id: str) -> Optional[PetriNet]:
        return self._nets.get(net_id)

    def all(self) -> List[PetriNet]:
        return list(self._nets.values())

    def for_admin(self, admin_id: str) -> List[PetriNet]:
        return [n for n in self._nets.values() if n.admin_id == admin_id]

    def __contains__(self, net_id: object) -> bool:
        return net_id in self._nets

    def __len__(self) -> int:
        return len(self._nets)

    def __repr__(self) -> str:
        return f"NetDirectory({len(self)} nets)"
