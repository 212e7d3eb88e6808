"""CLI commands"""

from .deploy import deploy_command

__all__ = ["deploy_command"]
