"""qbdeploy - Quiz Builder deployment orchestrator"""

from ._version import __version__

__all__ = ["__version__"]
