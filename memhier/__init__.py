"""Memory hierarchy simulator: set-associative cache levels backed by main
memory and secondary storage, with pluggable replacement policies.
"""
from memhier.core.cache import CacheLevel, CacheLevelConfig
from memhier.core.errors import ConfigurationError, SimulationError
from memhier.core.replacement_policies import ReplacementPolicy
from memhier.core.simulator import AccessResult, SimulatorService
from memhier.core.workload import AccessPattern, AccessType, MemoryAccess, WorkloadGenerator
from memhier.data.stats_export import SimulationStatistics

__version__ = "0.1.0"

__all__ = [
    "CacheLevel", "CacheLevelConfig", "ConfigurationError", "SimulationError",
    "ReplacementPolicy", "AccessResult", "SimulatorService", "AccessPattern",
    "AccessType", "MemoryAccess", "WorkloadGenerator", "SimulationStatistics",
]
