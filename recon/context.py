from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from entity_store.common import PrintLogger, new_run_id
from entity_store.config import DEFAULT_RUNTIME, parse_type_filter
from entity_store.endpoints.base import EntityStore
from entity_store.events import Emitter


@dataclass(frozen=True)
class ReconSettings:
    """Run-level knobs; built once from configuration and handed to the orchestrator."""

    page_size: int = 1000
    max_pages: int = 100
    max_parallel: int = 1
    report_dir: str = "logs"
    dump_snapshots: bool = True
    preview_limit: int = 5
    only_types: Optional[Tuple[str, ...]] = None

    @property
    def safety_bound(self) -> int:
        return self.page_size * self.max_pages

    @classmethod
    def from_config(cls, cfg: Optional[Dict[str, Any]]) -> "ReconSettings":
        runtime = dict(DEFAULT_RUNTIME)
        runtime.update((cfg or {}).get("runtime") or {})
        only_types = parse_type_filter(runtime.get("only_types"))
        return cls(
            page_size=int(runtime["page_size"]),
            max_pages=int(runtime["max_pages"]),
            max_parallel=max(1, int(runtime["max_parallel"])),
            report_dir=str(runtime["report_dir"]),
            dump_snapshots=bool(runtime["dump_snapshots"]),
            preview_limit=max(0, int(runtime["preview_limit"])),
            only_types=tuple(only_types) if only_types else None,
        )


@dataclass
class ReconContext:
    """Everything one reconciliation run shares across its per-type work."""

    settings: ReconSettings
    source: EntityStore
    target: EntityStore
    logger: PrintLogger
    emitter: Optional[Emitter] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)
    run_id: str = field(default_factory=new_run_id)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()
