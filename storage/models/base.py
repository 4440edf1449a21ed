"""
Base ORM Model.

============================================================
PURPOSE
============================================================
Provides the declarative base used by the registry's ORM
models. Every datetime column is timezone-aware.

============================================================
"""

from datetime import datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Declarative base for all ORM models.

    Holds the shared metadata used for table creation.
    """

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }
