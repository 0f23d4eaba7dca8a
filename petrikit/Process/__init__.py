"""
Public API for :mod:`petrikit.Process`.

Re-exported classes
-------------------
- :class:`~petrikit.Process.users.User`
- :class:`~petrikit.Process.users.UserRole`
- :class:`~petrikit.Process.users.UserDirectory`
- :class:`~petrikit.Process.nets.NetDirectory`
- :class:`~petrikit.Process.computation.Computation`
- :class:`~petrikit.Process.computation.ComputationStep`
- :class:`~petrikit.Process.computation.ComputationStatus`
- :class:`~petrikit.Process.computation.ComputationObserver`

:class:`~petrikit.Process.context.SystemContext` and
:class:`~petrikit.Process.service.ProcessService` depend on :mod:`petrikit.IO`
and are imported from their own modules.
"""

from __future__ import annotations

from typing import List

from .authorization import can_fire, check_fire_permission, is_net_admin
from .computation import (
    Computation,
    ComputationObserver,
    ComputationStatus,
    ComputationStep,
)
from .nets import NetDirectory
from .users import User, UserDirectory, UserRole

__all__: List[str] = [
    "User",
    "UserRole",
    "UserDirectory",
    "NetDirectory",
    "Computation",
    "ComputationStep",
    "ComputationStatus",
    "ComputationObserver",
    "can_fire",
    "check_fire_permission",
    "is_net_admin",
]
