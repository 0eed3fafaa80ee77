"""
Client-side plumbing for paginated entity stores.

The package holds what the reconciliation engine needs to talk to a store
(endpoint abstractions, the HTTP implementation, page plans) together with the
shared runtime helpers (structured logger, event emitter, config validation).
"""

from .common import RUN_ID, PrintLogger
from .endpoints.base import EntityStore, PageResult, StoreUnavailable

__all__ = ["RUN_ID", "PrintLogger", "EntityStore", "PageResult", "StoreUnavailable"]
