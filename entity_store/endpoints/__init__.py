from .base import EntityStore, StoreUnavailable
from .factory import EndpointFactory
from .http import HttpEntityStore, StoreSettings

__all__ = ["EntityStore", "StoreUnavailable", "EndpointFactory", "HttpEntityStore", "StoreSettings"]
