"""
Storage ORM Models.

============================================================
MODELS
============================================================
- Base: declarative base (timezone-aware datetimes)
- ServerModel: liveness record per (host, port) endpoint

============================================================
"""

from storage.models.base import Base
from storage.models.server import ServerModel

__all__ = [
    "Base",
    "ServerModel",
]
