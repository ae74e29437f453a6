"""Core functionality of the generation relay.

Architecture Overview
---------------------
1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - Loaded once per process, frozen, injectable for tests

2. **Upstream Layer** (upstream.py):
   - ``InferenceClient``: submit, status and fetch calls over httpx
   - All failures surface as ``UpstreamError``

3. **Relay Layer** (relay.py, polling.py):
   - ``GenerationRelay``: validate, submit, poll, fetch
   - ``BoundedPoller``: cancellable bounded-retry loop

4. **Support Modules**:
   - jobs.py: request, job and result models, status and phase enums
   - errors.py: one exception class per reported error kind
"""

from genrelay.core.config import RelayConfig, config
from genrelay.core.errors import RelayError
from genrelay.core.relay import GenerationRelay

__all__ = [
    "GenerationRelay",
    "RelayConfig",
    "RelayError",
    "config",
]
