from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..config import Settings
from ..IO.store import (
    ComputationStore,
    InMemoryComputationStore,
    JsonComputationStore,
    NetFileStore,
    UserFileStore,
)
from .nets import NetDirectory
from .users import UserDirectory

LOGGER = logging.getLogger(__name__)


@dataclass
class SystemContext:
    """
    Shared collaborators, built once at start-up and passed explicitly.

    :param users: User lookup.
    :type users: UserDirectory
    :param nets: Validated nets.
    :type nets: NetDirectory
    :param computation_store: Snapshot persistence for computations.
    :type computation_store: ComputationStore
    :param settings: Settings the context was built from.
    :type settings: Settings
    :param net_store: Optional file store backing ``nets``.
    :type net_store: Optional[NetFileStore]
    :param user_store: Optional file store backing ``users``.
    :type user_store: Optional[UserFileStore]
    """

    users: UserDirectory = field(default_factory=UserDirectory)
    nets: NetDirectory = field(default_factory=NetDirectory)
    computation_store: ComputationStore = field(default_factory=InMemoryComputationStore)
    settings: Settings = field(default_factory=Settings)
    net_store: Optional[NetFileStore] = None
    user_store: Optional[UserFileStore] = None

    @classmethod
    def in_memory(cls, settings: Optional[Settings] = None) -> "SystemContext":
        """Empty context without any file backing."""
        return cls(settings=settings or Settings())

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SystemContext":
        """
        Load users and nets from the files named by ``settings``.

        Nets that fail validation are skipped with a warning.

        :param settings: Paths and policy flags; defaults to :meth:`Settings.from_env`.
        :returns: Ready-to-use context.
        :rtype: SystemContext
        """
        settings = settings or Settings.from_env()
        user_store = UserFileStore(settings.users_path, default_admins=settings.default_admins)
        net_store = NetFileStore(settings.nets_path)

        users = UserDirectory.from_users(user_store.load_all())
        nets = NetDirectory()
        for net in net_store.load_all():
            if not net.is_valid():
                LOGGER.warning("Ignoring invalid net %s (%s)", net.id, net.name)
                continue
            nets.register(net)

        return cls(
            users=users,
            nets=nets,
            computation_store=JsonComputationStore(settings.computations_path),
            settings=settings,
            net_store=net_store,
            user_store=user_store,
        )

    def save_users(self) -> None:
        if self.user_store is not None:
            self.user_store.save_all(self.users.all())

    def save_nets(self) -> None:
        if self.net_store is not None:
            self.net_store.save_all(self.nets.all())
