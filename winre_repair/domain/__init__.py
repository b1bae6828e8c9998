"""Domain models for WinRE repair runs."""

from __future__ import annotations

from .models import (
    DiskLayout,
    OutcomeKind,
    PartitionRecord,
    PartitionStyle,
    RepairOutcome,
    RepairState,
    WinREStatus,
)


__all__ = [
    "DiskLayout",
    "OutcomeKind",
    "PartitionRecord",
    "PartitionStyle",
    "RepairOutcome",
    "RepairState",
    "WinREStatus",
]
