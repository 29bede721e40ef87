"""Remote service deployment."""

from .deployer import RemoteDeployer

__all__ = ["RemoteDeployer"]
