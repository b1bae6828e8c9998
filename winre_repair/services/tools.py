"""Operating system tools used by the repair procedure.

The procedure only talks to the narrow :class:`RecoveryTools` interface so
it can be exercised with a fake that records calls. :class:`WindowsRecoveryTools`
is the real implementation backed by:

- ``reagentc`` for WinRE status and registration
- ``powershell`` Get-Disk / Get-Partition for the partition table
- ``diskpart /s`` for the scripted partition changes
- ``shell32.IsUserAnAdmin`` for the privilege check
"""

from __future__ import annotations

import ctypes
import json
from pathlib import Path
from typing import Any, Protocol

from winre_repair.config.settings import Settings
from winre_repair.domain.models import DiskLayout, PartitionRecord, PartitionStyle
from winre_repair.logging import LoggerFactory, log_tool_output
from winre_repair.storage.commands import combined_output, run_command
from winre_repair.storage.diskpart import has_error_marker
from winre_repair.storage.exceptions import ExternalToolError, InvalidStateError


log = LoggerFactory.for_tools()


class RecoveryTools(Protocol):
    def is_elevated(self) -> bool: ...

    def query_status(self) -> str: ...

    def set_enabled(self, enabled: bool) -> str: ...

    def get_disk_layout(self, disk_index: int) -> DiskLayout: ...

    def run_partition_script(self, script_path: Path) -> str: ...


def is_user_admin() -> bool:
    try:
        return ctypes.windll.shell32.IsUserAnAdmin() != 0
    except (AttributeError, OSError):
        return False


def _as_list(data: Any) -> list[dict]:
    """PowerShell emits a bare object instead of a one-element array."""
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return [item for item in data if isinstance(item, dict)]


def parse_disk_layout(disk_index: int, disk_json: str, partitions_json: str) -> DiskLayout:
    """Build a DiskLayout from Get-Disk / Get-Partition JSON.

    Raises:
        InvalidStateError: If the disk is missing or its partition style is
            neither GPT nor MBR
        ExternalToolError: If the JSON is malformed
    """
    try:
        disks = _as_list(json.loads(disk_json or "null"))
        partitions = _as_list(json.loads(partitions_json or "null"))
    except json.JSONDecodeError as error:
        raise ExternalToolError(
            ["powershell"], None, message=f"Unreadable disk information: {error}"
        ) from error

    if not disks:
        raise InvalidStateError(f"Disk {disk_index} was not found")
    style = PartitionStyle.from_powershell(disks[0].get("PartitionStyle"))
    if style is None:
        raise InvalidStateError(
            f"Disk {disk_index} has unsupported partition style "
            f"{disks[0].get('PartitionStyle')!r}"
        )

    try:
        records = [PartitionRecord.from_powershell_dict(item) for item in partitions]
    except (KeyError, TypeError, ValueError) as error:
        raise ExternalToolError(
            ["powershell"], None, message=f"Unreadable partition record: {error}"
        ) from error
    records.sort(key=lambda record: (record.offset, record.number))
    return DiskLayout(index=disk_index, style=style, partitions=tuple(records))


class WindowsRecoveryTools:
    """RecoveryTools backed by reagentc, powershell and diskpart."""

    def __init__(self, settings: Settings | None = None):
        settings = settings or Settings()
        self.reagentc = settings.get("reagentc", "reagentc.exe")
        self.diskpart = settings.get("diskpart", "diskpart.exe")
        self.powershell = settings.get("powershell", "powershell.exe")
        self.timeout = settings.command_timeout

    def is_elevated(self) -> bool:
        return is_user_admin()

    def query_status(self) -> str:
        result = run_command([self.reagentc, "/info"], timeout=self.timeout)
        return result.stdout

    def set_enabled(self, enabled: bool) -> str:
        verb = "/enable" if enabled else "/disable"
        result = run_command([self.reagentc, verb], timeout=self.timeout)
        output = combined_output(result)
        log_tool_output(log, "reagentc", output)
        return output

    def _run_powershell(self, script: str) -> str:
        cmd = [
            self.powershell,
            "-NoProfile",
            "-NonInteractive",
            "-ExecutionPolicy", "Bypass",
            "-Command", script,
        ]
        return run_command(cmd, timeout=self.timeout).stdout

    def get_disk_layout(self, disk_index: int) -> DiskLayout:
        disk_json = self._run_powershell(
            f"Get-Disk -Number {int(disk_index)} | "
            "Select-Object Number, PartitionStyle | ConvertTo-Json -Compress"
        )
        partitions_json = self._run_powershell(
            f"Get-Partition -DiskNumber {int(disk_index)} | "
            "Select-Object PartitionNumber, Offset, Size | ConvertTo-Json -Compress"
        )
        return parse_disk_layout(disk_index, disk_json, partitions_json)

    def run_partition_script(self, script_path: Path) -> str:
        command = [self.diskpart, "/s", str(script_path)]
        result = run_command(command, timeout=self.timeout, check=False)
        output = combined_output(result)
        log_tool_output(log, "diskpart", output)
        if result.returncode != 0:
            raise ExternalToolError(command, result.returncode, output=output)
        if has_error_marker(output):
            raise ExternalToolError(
                command, result.returncode, output=output, message="diskpart reported an error"
            )
        return output
