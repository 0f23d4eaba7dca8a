"""
File-backed collaborators of the orchestration layer.

Every save is a full snapshot written to a temporary file in the target
directory and moved into place with :func:`os.replace`, so readers never see
a partially written file.

* :class:`JsonComputationStore`: computations as a JSON object keyed by id.
* :class:`NetFileStore`: nets as a JSON list.
* :class:`UserFileStore`: users as a CSV table (``id,email,role``) through
  :mod:`pandas`.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from ..Net.petri_net import PetriNet
from ..Process.computation import Computation
from ..Process.users import User, UserRole
from .serialization import (
    computation_from_dict,
    computation_to_dict,
    net_from_dict,
    net_to_dict,
    user_from_dict,
    user_to_dict,
)

LOGGER = logging.getLogger(__name__)

USER_COLUMNS = ["id", "email", "role"]


def atomic_write(path: str, write: Callable[[Any], None], *, newline: Optional[str] = None) -> None:
    """
    Write a file through a temporary sibling and atomically replace ``path``.

    :param path: Destination path; parent directories are created.
    :param write: Callback receiving the open text handle.
    :param newline: Passed to :func:`open` (``""`` for CSV writers).
    :raises OSError: If the file cannot be written or replaced.
    """
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline=newline) as fh:
            write(fh)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def _read_json(path: str, logger: logging.Logger) -> Optional[Any]:
    if not os.path.exists(path) or os.path.getsize(path) == 0:
        logger.info("No data file found at %s. Starting fresh.", path)
        return None
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, ValueError):
        logger.exception("Could not read %s; starting with an empty collection", path)
        return None


# ---------------------------------------------------------------------------
# Computations
# ---------------------------------------------------------------------------


class ComputationStore(ABC):
    """Load-all / save-all persistence contract for computations."""

    @abstractmethod
    def load_all(self) -> Dict[str, Computation]:
        """Return every stored computation keyed by id."""
        raise NotImplementedError

    @abstractmethod
    def save_all(self, computations: Mapping[str, Computation]) -> None:
        """
        Replace the stored snapshot with ``computations``.

        :raises OSError: If the snapshot cannot be written.
        """
        raise NotImplementedError


class InMemoryComputationStore(ComputationStore):
    """
    Keeps the last snapshot as plain data.

    Loading decodes fresh objects, which mirrors a file round trip without I/O.
    """

    def __init__(self, snapshot: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self.snapshot: Dict[str, Dict[str, Any]] = dict(snapshot or {})
        self.save_count = 0

    def load_all(self) -> Dict[str, Computation]:
        return {cid: computation_from_dict(data) for cid, data in self.snapshot.items()}

    def save_all(self, computations: Mapping[str, Computation]) -> None:
        self.snapshot = {cid: computation_to_dict(c) for cid, c in computations.items()}
        self.save_count += 1


class JsonComputationStore(ComputationStore):
    """
    Computations persisted as one pretty-printed JSON document.

    :param path: JSON file path.
    :type path: str
    :param logger: Logger for load diagnostics; defaults to the module logger.
    :type logger: Optional[logging.Logger]
    """

    def __init__(self, path: str, *, logger: Optional[logging.Logger] = None) -> None:
        self.path = path
        self.logger = logger or LOGGER

    def load_all(self) -> Dict[str, Computation]:
        raw = _read_json(self.path, self.logger)
        if not raw:
            return {}
        if not isinstance(raw, dict):
            self.logger.error(
                "Expected a JSON object keyed by computation id in %s, found %s; "
                "starting with an empty collection",
                self.path,
                type(raw).__name__,
            )
            return {}
        out: Dict[str, Computation] = {}
        for cid, data in raw.items():
            try:
                out[cid] = computation_from_dict(data)
            except (AttributeError, KeyError, TypeError, ValueError):
                self.logger.exception("Skipping unreadable computation %s in %s", cid, self.path)
        self.logger.debug("Loaded %d computations from %s", len(out), self.path)
        return out

    def save_all(self, computations: Mapping[str, Computation]) -> None:
        payload = {cid: computation_to_dict(c) for cid, c in computations.items()}
        atomic_write(self.path, lambda fh: json.dump(payload, fh, indent=2))
        self.logger.debug("Saved %d computations to %s", len(payload), self.path)


# ---------------------------------------------------------------------------
# Nets
# ---------------------------------------------------------------------------


class NetFileStore:
    """
    Nets persisted as a JSON list.

    :param path: JSON file path.
    :type path: str
    :param logger: Optional logger.
    :type logger: Optional[logging.Logger]
    """

    def __init__(self, path: str, *, logger: Optional[logging.Logger] = None) -> None:
        self.path = path
        self.logger = logger or LOGGER

    def load_all(self) -> List[PetriNet]:
        raw = _read_json(self.path, self.logger)
        if not raw:
            return []
        if not isinstance(raw, list):
            self.logger.error(
                "Expected a JSON list of nets in %s, found %s; starting with no nets",
                self.path,
                type(raw).__name__,
            )
            return []
        nets: List[PetriNet] = []
        for index, data in enumerate(raw):
            try:
                nets.append(net_from_dict(data))
            except (AttributeError, KeyError, TypeError, ValueError):
                net_id = data.get("id") if isinstance(data, dict) else None
                self.logger.exception(
                    "Skipping unreadable net #%d (%s) in %s", index, net_id, self.path
                )
        return nets

    def save_all(self, nets: Iterable[PetriNet]) -> None:
        payload = [net_to_dict(n) for n in nets]
        atomic_write(self.path, lambda fh: json.dump(payload, fh, indent=2))
        self.logger.debug("Saved %d nets to %s", len(payload), self.path)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserFileStore:
    """
    Users persisted as a CSV table with columns ``id,email,role``.

    When the file is missing or empty, :meth:`load_all` seeds it with one
    administrator per entry of ``default_admins``.

    :param path: CSV file path.
    :type path: str
    :param default_admins: E-mail addresses of the seeded administrators.
    :type default_admins: Sequence[str]
    :param logger: Optional logger.
    :type logger: Optional[logging.Logger]
    """

    def __init__(
        self,
        path: str,
        *,
        default_admins: Sequence[str] = (),
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.path = path
        self.default_admins = tuple(default_admins)
        self.logger = logger or LOGGER

    def load_all(self) -> List[User]:
        if not os.path.exists(self.path) or os.path.getsize(self.path) == 0:
            admins = [User(email=e, role=UserRole.ADMIN) for e in self.default_admins]
            self.logger.warning(
                "User table %s missing; seeding %d administrators", self.path, len(admins)
            )
            self.save_all(admins)
            return admins
        df = pd.read_csv(self.path, dtype=str, keep_default_na=False)
        missing = [c for c in USER_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"User table {self.path} lacks columns: {missing}")
        return [user_from_dict(row) for row in df[USER_COLUMNS].to_dict("records")]

    def save_all(self, users: Iterable[User]) -> None:
        df = pd.DataFrame([user_to_dict(u) for u in users], columns=USER_COLUMNS)
        atomic_write(self.path, lambda fh: df.to_csv(fh, index=False), newline="")
