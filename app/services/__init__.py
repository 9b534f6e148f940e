"""Services package."""
from app.services.snapshot_loader import SnapshotLoader, get_snapshot_loader

__all__ = [
    "SnapshotLoader",
    "get_snapshot_loader",
]
