"""
Server Liveness Registry.

This package provides:
1. ServerRegistry: register / unregister / ping / discovery / sweep
2. ServerRecord: domain view of a registered server
3. RegistryConfig: liveness windows and store settings
"""

from registry.config import RegistryConfig
from registry.models import ServerRecord, parse_server_id, server_id
from registry.service import ServerRegistry

__version__ = "0.1.0"
__all__ = [
    "RegistryConfig",
    "ServerRecord",
    "ServerRegistry",
    "parse_server_id",
    "server_id",
]
