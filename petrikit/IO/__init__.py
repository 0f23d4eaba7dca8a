"""
Persistence collaborators for :mod:`petrikit`.

Re-exported names
-----------------
- :class:`~petrikit.IO.store.ComputationStore`
- :class:`~petrikit.IO.store.InMemoryComputationStore`
- :class:`~petrikit.IO.store.JsonComputationStore`
- :class:`~petrikit.IO.store.NetFileStore`
- :class:`~petrikit.IO.store.UserFileStore`
"""

from __future__ import annotations

from typing import List

from .store import (
    ComputationStore,
    InMemoryComputationStore,
    JsonComputationStore,
    NetFileStore,
    UserFileStore,
)

__all__: List[str] = [
    "ComputationStore",
    "InMemoryComputationStore",
    "JsonComputationStore",
    "NetFileStore",
    "UserFileStore",
]
