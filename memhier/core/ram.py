"""Terminal memory tiers.

Both tiers sit below the last cache level and always "hit": they do not
track contents, only how often they were visited.

Parameters:
- MainMemory(latency) / SecondaryStorage(latency)
- access() -> counts a visit and returns the tier latency in cycles
- reset() -> clears the visit counter
"""
import logging

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class MemoryTier:
    name = "memory"

    def __init__(self, latency: int):
        if not isinstance(latency, int) or latency < 0:
            raise ConfigurationError(f"{self.name} latency must be a non-negative integer, got {latency!r}")
        self.access_latency = latency
        self.accesses = 0

    def access(self) -> int:
        self.accesses += 1
        return self.access_latency

    def reset(self):
        self.accesses = 0


class MainMemory(MemoryTier):
    name = "RAM"


class SecondaryStorage(MemoryTier):
    name = "Storage"
