"""Parsing of ``reagentc /info`` output.

reagentc prints free text such as::

    Windows Recovery Environment (Windows RE) and system reset configuration
    Information:

        Windows RE status:         Enabled
        Windows RE location:       \\\\?\\GLOBALROOT\\device\\harddisk0\\partition4\\Recovery\\WindowsRE
        Boot Configuration Data (BCD) identifier: 6f2d7c1e-...

Only two facts are taken from it: whether WinRE is enabled, and the
``harddisk<N>`` / ``partition<M>`` pair of its location. Everything else is
left to the partition enumeration.
"""

from __future__ import annotations

import re

from winre_repair.domain.models import DiskLayout, WinREStatus
from winre_repair.storage.exceptions import ParseError


_STATUS_PATTERN = re.compile(r"Windows RE status\s*:\s*(\w+)", re.IGNORECASE)
_LOCATION_PATTERN = re.compile(r"harddisk(\d+)\\+partition(\d+)", re.IGNORECASE)


def is_enabled(text: str) -> bool:
    """Return True when the status text carries the Enabled marker."""
    match = _STATUS_PATTERN.search(text or "")
    if match:
        return match.group(1).lower() == "enabled"
    # Unlabelled output: fall back to a bare marker.
    return re.search(r"\benabled\b", text or "", re.IGNORECASE) is not None


def parse_location(text: str) -> tuple[int, int] | None:
    """Extract (disk, partition) from a WinRE location substring."""
    match = _LOCATION_PATTERN.search(text or "")
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def parse_status(text: str) -> WinREStatus:
    """Parse ``reagentc /info`` output into a WinREStatus.

    The returned status has no partition layout information yet
    (``resizable`` False, size unknown); see :func:`apply_layout`.

    Raises:
        ParseError: If WinRE is enabled but no location can be extracted
    """
    if not is_enabled(text):
        return WinREStatus(enabled=False)

    location = parse_location(text)
    if location is None:
        raise ParseError(
            "WinRE is enabled but its harddisk/partition location could not be parsed",
            raw_text=text,
        )
    disk_index, partition_index = location
    return WinREStatus(
        enabled=True,
        disk_index=disk_index,
        partition_index=partition_index,
    )


def apply_layout(status: WinREStatus, layout: DiskLayout) -> WinREStatus:
    """Fill in resizable and current size from the disk's partition table."""
    if not status.has_location or layout.index != status.disk_index:
        return status
    partition = layout.get_partition(status.partition_index)
    return WinREStatus(
        enabled=status.enabled,
        disk_index=status.disk_index,
        partition_index=status.partition_index,
        resizable=partition is not None
        and layout.is_last_partition(status.partition_index),
        current_size_bytes=partition.size_bytes if partition else None,
    )
