"""Installed version of petrikit, ``0.0.0-dev`` when running from a source tree."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("petrikit")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
