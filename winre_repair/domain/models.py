"""Domain model for a WinRE repair run.

All objects here live for a single run: they are built from tool output,
consumed by the repair procedure and then discarded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# ==============================================================================
# Disk Domain
# ==============================================================================


class PartitionStyle(Enum):
    """Partition table style of a disk."""

    GPT = "gpt"
    MBR = "mbr"

    @classmethod
    def from_powershell(cls, value: Any) -> PartitionStyle | None:
        """Convert a Get-Disk PartitionStyle value ("GPT", "MBR", 1, 2).

        Returns None for RAW or unrecognised values.
        """
        if isinstance(value, int):
            # CIM enum: 0 = RAW, 1 = MBR, 2 = GPT
            return {1: cls.MBR, 2: cls.GPT}.get(value)
        normalized = str(value or "").strip().lower()
        for style in cls:
            if style.value == normalized:
                return style
        return None


@dataclass(frozen=True)
class PartitionRecord:
    """One partition as reported by Get-Partition."""

    number: int
    size_bytes: int
    offset: int = 0

    @classmethod
    def from_powershell_dict(cls, data: dict[str, Any]) -> PartitionRecord:
        """Convert a Get-Partition JSON object.

        Raises:
            KeyError: If PartitionNumber is missing
            ValueError: If a numeric field cannot be converted
        """
        return cls(
            number=int(data["PartitionNumber"]),
            size_bytes=int(data.get("Size") or 0),
            offset=int(data.get("Offset") or 0),
        )


@dataclass(frozen=True)
class DiskLayout:
    """Partition table of one disk, partitions ordered by offset."""

    index: int
    style: PartitionStyle
    partitions: tuple[PartitionRecord, ...] = ()

    def get_partition(self, number: int) -> PartitionRecord | None:
        for partition in self.partitions:
            if partition.number == number:
                return partition
        return None

    def is_last_partition(self, number: int) -> bool:
        """True when partition ``number`` exists and nothing follows it."""
        if not self.partitions:
            return False
        return self.partitions[-1].number == number

    def partition_before(self, number: int) -> PartitionRecord | None:
        """Partition immediately preceding ``number`` on disk, if any."""
        previous = None
        for partition in self.partitions:
            if partition.number == number:
                return previous
            previous = partition
        return None


# ==============================================================================
# WinRE Domain
# ==============================================================================


@dataclass(frozen=True)
class WinREStatus:
    """WinRE state at the moment of inspection.

    When ``enabled`` is False the location fields are None and
    ``resizable`` is False.
    """

    enabled: bool
    disk_index: int | None = None
    partition_index: int | None = None
    resizable: bool = False
    current_size_bytes: int | None = None

    @property
    def has_location(self) -> bool:
        return self.disk_index is not None and self.partition_index is not None

    def describe_location(self) -> str:
        if not self.has_location:
            return "unknown"
        return f"disk {self.disk_index}, partition {self.partition_index}"


# ==============================================================================
# Repair Run Domain
# ==============================================================================


class RepairState(Enum):
    """Position of a run in the repair sequence."""

    START = "start"
    CHECKED_PRIVILEGE = "checked-privilege"
    INSPECTED = "inspected"
    NOOP_DONE = "noop-done"
    DECIDED_PROCEED = "decided-proceed"
    SCRIPTED = "scripted"
    DISABLED = "disabled"
    PARTITIONED = "partitioned"
    ENABLED = "enabled"
    CLEANED = "cleaned"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RepairState.NOOP_DONE, RepairState.DONE, RepairState.FAILED)


class OutcomeKind(Enum):
    REPAIRED = "repaired"
    NOOP = "noop"
    DRY_RUN = "dry-run"


@dataclass(frozen=True)
class RepairOutcome:
    """Result of a successful (or intentionally skipped) run."""

    kind: OutcomeKind
    summary: str
    status: WinREStatus
    script: tuple[str, ...] = field(default_factory=tuple)

    @property
    def mutated(self) -> bool:
        return self.kind is OutcomeKind.REPAIRED
