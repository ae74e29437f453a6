"""Generation relay: bridges synchronous HTTP requests to an async inference API."""

__version__ = "0.1.0"

from genrelay.core.config import RelayConfig, config
from genrelay.core.relay import GenerationRelay

__all__ = [
    "GenerationRelay",
    "RelayConfig",
    "config",
]
