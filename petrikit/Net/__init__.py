"""
Public API for :mod:`petrikit.Net`.

Re-exported classes
-------------------
- :class:`~petrikit.Net.elements.Place`
- :class:`~petrikit.Net.elements.Transition`
- :class:`~petrikit.Net.elements.Arc`
- :class:`~petrikit.Net.elements.TransitionRole`
- :class:`~petrikit.Net.marking.MarkingData`
- :class:`~petrikit.Net.petri_net.PetriNet`
"""

from __future__ import annotations

from typing import List

from .elements import Arc, Place, Transition, TransitionRole, new_id
from .marking import MarkingData
from .petri_net import PetriNet

__all__: List[str] = [
    "Arc",
    "Place",
    "Transition",
    "TransitionRole",
    "MarkingData",
    "PetriNet",
    "new_id",
]
