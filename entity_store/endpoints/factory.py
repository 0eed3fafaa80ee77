from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import requests

from .base import EntityStore
from .http import HttpEntityStore, StoreSettings


class EndpointFactory:
    """Construct source/target stores from the run configuration."""

    @staticmethod
    def build_store(
        cfg: Dict[str, Any],
        role: str,
        session: Optional[requests.Session] = None,
    ) -> EntityStore:
        if role not in {"source", "target"}:
            raise ValueError(f"Unsupported store role: {role}")
        settings = StoreSettings.from_config(role, cfg.get(role))
        return HttpEntityStore(settings, session=session)

    @staticmethod
    def build_stores(
        cfg: Dict[str, Any],
        session: Optional[requests.Session] = None,
    ) -> Tuple[EntityStore, EntityStore]:
        return (
            EndpointFactory.build_store(cfg, "source", session=session),
            EndpointFactory.build_store(cfg, "target", session=session),
        )


__all__ = ["EndpointFactory"]
