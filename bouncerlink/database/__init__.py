"""Storage layer for BouncerLink."""

from .base import LinkStoreBase, VisitRecorderBase
from .memory import InMemoryLinkStore
from .postgres import LinkStorePostgres
from .models import Link, VisitLog, VisitorKey

__all__ = [
    "LinkStoreBase",
    "VisitRecorderBase",
    "InMemoryLinkStore",
    "LinkStorePostgres",
    "Link",
    "VisitLog",
    "VisitorKey",
]
