from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

ENV_DATA_DIR = "PETRIKIT_DATA_DIR"


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration for a petrikit deployment.

    :param data_dir: Directory holding every persisted file.
    :type data_dir: str
    :param computations_file: File name of the computation snapshot (JSON).
    :type computations_file: str
    :param nets_file: File name of the net directory (JSON).
    :type nets_file: str
    :param users_file: File name of the user table (CSV).
    :type users_file: str
    :param restrict_admin_delete_to_net_owner: If ``True`` only the administrator
        owning a net may delete computations running on it. The default keeps
        the permissive rule under which any administrator may delete.
    :type restrict_admin_delete_to_net_owner: bool
    :param default_admins: E-mail addresses seeded as administrators when the
        user table does not exist yet.
    :type default_admins: Tuple[str, ...]
    """

    data_dir: str = "data"
    computations_file: str = "computations.json"
    nets_file: str = "petriNets.json"
    users_file: str = "userData.csv"
    restrict_admin_delete_to_net_owner: bool = False
    default_admins: Tuple[str, ...] = field(
        default=("admin1@example.com", "admin2@example.com")
    )

    @property
    def computations_path(self) -> str:
        return os.path.join(self.data_dir, self.computations_file)

    @property
    def nets_path(self) -> str:
        return os.path.join(self.data_dir, self.nets_file)

    @property
    def users_path(self) -> str:
        return os.path.join(self.data_dir, self.users_file)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings, taking ``data_dir`` from ``PETRIKIT_DATA_DIR`` when set.

        :param environ: Mapping to read from; defaults to :data:`os.environ`.
        :returns: Settings instance.
        :rtype: Settings
        """
        env = os.environ if environ is None else environ
        data_dir = env.get(ENV_DATA_DIR)
        if data_dir:
            return cls(data_dir=data_dir)
        return cls()
