"""diskpart directive scripts for recreating the WinRE partition.

The script shrinks the partition in front of WinRE by a fixed 250 MB,
deletes the WinRE partition and creates a new recovery partition in the
freed space at the end of the disk:

    sel disk 0
    sel partition 3
    shrink desired=250 minimum=250
    sel partition 4
    delete partition override
    create partition primary id=de94bba4-06d1-4d40-a16a-bfd50179d6ac
    gpt attributes=0x8000000000000001
    format quick fs=ntfs label="Windows RE tools"

On MBR disks the partition is created with ``id=27`` and no GPT attributes.

The script is written to a transient file for ``diskpart /s`` and removed
after use; removal failures are logged as CleanupWarning and never raised.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Sequence

from winre_repair.domain.models import PartitionStyle
from winre_repair.logging import LoggerFactory
from winre_repair.storage.exceptions import CleanupWarning


log = LoggerFactory.for_tools()

SHRINK_MB = 250
GPT_RECOVERY_TYPE_ID = "de94bba4-06d1-4d40-a16a-bfd50179d6ac"
MBR_RECOVERY_TYPE_ID = "27"
# GPT_ATTRIBUTE_PLATFORM_REQUIRED | GPT_BASIC_DATA_ATTRIBUTE_NO_DRIVE_LETTER
GPT_RECOVERY_ATTRIBUTES = "0x8000000000000001"
WINRE_VOLUME_LABEL = "Windows RE tools"

ERROR_MARKERS = (
    "DiskPart has encountered an error",
    "Virtual Disk Service error",
)


def build_resize_script(
    disk_index: int,
    preceding_partition: int,
    winre_partition: int,
    style: PartitionStyle,
) -> list[str]:
    """Build the ordered diskpart directives for the shrink-and-recreate."""
    script = [
        f"sel disk {disk_index}",
        f"sel partition {preceding_partition}",
        f"shrink desired={SHRINK_MB} minimum={SHRINK_MB}",
        f"sel partition {winre_partition}",
        "delete partition override",
    ]
    if style is PartitionStyle.GPT:
        script.append(f"create partition primary id={GPT_RECOVERY_TYPE_ID}")
        script.append(f"gpt attributes={GPT_RECOVERY_ATTRIBUTES}")
    elif style is PartitionStyle.MBR:
        script.append(f"create partition primary id={MBR_RECOVERY_TYPE_ID}")
    else:
        raise ValueError(f"Unsupported partition style: {style!r}")
    script.append(f'format quick fs=ntfs label="{WINRE_VOLUME_LABEL}"')
    return script


def has_error_marker(output: str) -> bool:
    lowered = (output or "").lower()
    return any(marker.lower() in lowered for marker in ERROR_MARKERS)


def write_script(script: Sequence[str], directory: Path | None = None) -> Path:
    """Write directives to a transient file and return its path."""
    if directory is not None:
        directory.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(
        prefix="winre-diskpart-",
        suffix=".txt",
        dir=str(directory) if directory is not None else None,
    )
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write("\n".join(script))
        handle.write("\n")
    path = Path(name)
    log.debug(f"Wrote diskpart script to {path}")
    return path


def remove_script(path: Path) -> CleanupWarning | None:
    """Best-effort removal of a transient script file.

    Returns the CleanupWarning that was logged, or None when the file is gone.
    """
    try:
        path.unlink()
    except FileNotFoundError:
        return None
    except OSError as error:
        warning = CleanupWarning(path, error)
        log.warning(str(warning))
        return warning
    log.debug(f"Removed diskpart script {path}")
    return None
