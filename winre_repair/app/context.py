from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional


@dataclass(frozen=True)
class RunContext:
    """Everything a single repair run needs besides the tools themselves."""

    log_path: Optional[Path] = None
    force: bool = False
    dry_run: bool = False
    script_dir: Optional[Path] = None
    clock: Callable[[], datetime] = datetime.now
    run_id: str = field(default_factory=lambda: f"repair-{uuid.uuid4().hex[:8]}")

    def now(self) -> datetime:
        return self.clock()
