"""SimulatorService routes accesses through the cache hierarchy.

Each access visits the levels in order, paying each visited level's
latency, and stops at the first hit. A miss at every level goes to main
memory; with a fixed probability (1% by default, independent of the
address) it also pays a trip to secondary storage.
"""
import copy
import logging
import random
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .cache import EMPTY_TAG, CacheLevel, CacheLevelConfig
from .errors import ConfigurationError, InvalidAccessError, SimulationError
from .ram import MainMemory, SecondaryStorage
from .replacement_policies import ReplacementPolicy, create_strategy
from .workload import AccessType, MemoryAccess
from ..data.stats_export import CacheLevelStatistics, SimulationStatistics, summary_text

logger = logging.getLogger(__name__)

STORAGE_PROBABILITY = 0.01
PROGRESS_INTERVAL = 100

ProgressSink = Callable[[int], None]


@dataclass(frozen=True)
class AccessResult:
    address: int
    access_type: AccessType
    is_hit: bool
    hit_level: int
    total_latency: int
    details: str = ""

    @property
    def hit_miss_text(self) -> str:
        return "Hit" if self.is_hit else "Miss"

    @property
    def address_hex(self) -> str:
        return f"0x{self.address:08X}"


class SimulatorService:
    def __init__(self, configs: Sequence[CacheLevelConfig], policy=ReplacementPolicy.LRU,
                 main_memory_latency: int = 100, storage_latency: int = 10000,
                 seed: Optional[int] = None, storage_probability: float = STORAGE_PROBABILITY):
        if not configs:
            logger.warning("rejecting simulator without cache levels")
            raise ConfigurationError("at least one cache level must be enabled")
        if not 0.0 <= storage_probability <= 1.0:
            raise ConfigurationError(f"storage probability must be within [0, 1], got {storage_probability!r}")
        self.policy = ReplacementPolicy.from_name(policy)
        self.seed = seed
        self.storage_probability = storage_probability
        self._rng = random.Random()

        self._levels: List[CacheLevel] = []
        for i, cfg in enumerate(configs):
            strategy = create_strategy(self.policy, random.Random())
            self._levels.append(CacheLevel(cfg, i + 1, strategy=strategy))
        self._seed_sources()
        self._main_memory = MainMemory(main_memory_latency)
        self._storage = SecondaryStorage(storage_latency)
        self._stats = SimulationStatistics()
        logger.info("simulator ready: %d level(s), policy %s", len(self._levels), self.policy.value)

    @property
    def levels(self) -> List[CacheLevel]:
        return list(self._levels)

    @property
    def main_memory(self) -> MainMemory:
        return self._main_memory

    @property
    def secondary_storage(self) -> SecondaryStorage:
        return self._storage

    def access(self, ma: MemoryAccess) -> AccessResult:
        # checked before any level is touched so counters stay consistent
        if isinstance(ma.address, bool) or not isinstance(ma.address, int) or ma.address < 0:
            raise InvalidAccessError(f"address must be a non-negative integer, got {ma.address!r}")
        is_write = ma.type is AccessType.WRITE
        latency = 0
        hit_level = 0
        trail = []

        for level in self._levels:
            latency += level.config.access_latency
            outcome = level.access(ma.address, is_write)
            if outcome.hit:
                hit_level = level.level
                trail.append(f"{level.name} hit")
                break
            if outcome.evicted_tag != EMPTY_TAG:
                trail.append(f"{level.name} miss (evicted tag {outcome.evicted_tag})")
            else:
                trail.append(f"{level.name} miss")

        if not hit_level:
            latency += self._main_memory.access()
            trail.append(self._main_memory.name)
            if self._rng.random() < self.storage_probability:
                latency += self._storage.access()
                trail.append(self._storage.name)
                logger.debug("access 0x%X escalated to secondary storage", ma.address)

        self._stats.record_access(is_write, latency)
        return AccessResult(
            address=ma.address,
            access_type=ma.type,
            is_hit=bool(hit_level),
            hit_level=hit_level,
            total_latency=latency,
            details=" -> ".join(trail),
        )

    def run_bulk(self, accesses: Sequence[MemoryAccess], progress: Optional[ProgressSink] = None,
                 cancel: Optional[threading.Event] = None) -> List[AccessResult]:
        """Process `accesses` in order, same as calling access() for each.

        `progress` receives an integer percentage after the first access,
        then after every PROGRESS_INTERVAL accesses, and 100 at the end.
        Setting `cancel` stops the run between accesses; the results
        processed so far are returned and no final 100 is reported.
        """
        results = []
        total = len(accesses)
        for i, ma in enumerate(accesses):
            if cancel is not None and cancel.is_set():
                logger.info("run cancelled after %d of %d accesses", i, total)
                return results
            try:
                results.append(self.access(ma))
            except Exception as exc:
                raise SimulationError(f"access #{i} (address {ma.address}) failed: {exc}") from exc
            if progress is not None and i % PROGRESS_INTERVAL == 0:
                progress(int((i + 1) * 100.0 / total))
        if progress is not None:
            progress(100)
        return results

    def run_in_background(self, accesses: Sequence[MemoryAccess], progress: Optional[ProgressSink] = None,
                          cancel: Optional[threading.Event] = None) -> "BulkRun":
        run = BulkRun(self, accesses, progress, cancel)
        run.start()
        return run

    def statistics(self) -> SimulationStatistics:
        """Read-only snapshot of the running statistics."""
        snapshot = copy.copy(self._stats)
        snapshot.cache_level_stats = [
            CacheLevelStatistics(name=level.name, level=level.level, hits=level.hits, misses=level.misses)
            for level in self._levels
        ]
        snapshot.main_memory_accesses = self._main_memory.accesses
        snapshot.secondary_storage_accesses = self._storage.accesses
        return snapshot

    def reset(self):
        for level in self._levels:
            level.reset()
        self._main_memory.reset()
        self._storage.reset()
        self._stats.reset()
        self._seed_sources()

    def _seed_sources(self):
        # Random strategies draw from sources derived from the service seed,
        # so a reset service replays identically
        self._rng.seed(self.seed)
        for level in self._levels:
            strategy_seed = self._rng.getrandbits(64)
            rng = getattr(level.strategy, "rng", None)
            if rng is not None:
                rng.seed(strategy_seed)

    def summary_text(self) -> str:
        return summary_text(self.statistics())


class BulkRun:
    """Handle for a run_bulk call executing on a worker thread."""

    def __init__(self, service: SimulatorService, accesses, progress=None, cancel=None):
        self.service = service
        self.results: Optional[List[AccessResult]] = None
        self.error: Optional[BaseException] = None
        self._accesses = accesses
        self._progress = progress
        self._cancel = cancel
        self._thread = threading.Thread(target=self._worker, daemon=True)

    def _worker(self):
        try:
            self.results = self.service.run_bulk(self._accesses, self._progress, self._cancel)
        except Exception as exc:
            logger.error("background run failed: %s", exc)
            self.error = exc

    def start(self):
        self._thread.start()

    @property
    def done(self) -> bool:
        return not self._thread.is_alive()

    def wait(self, timeout: Optional[float] = None) -> List[AccessResult]:
        self._thread.join(timeout)
        if self._thread.is_alive():
            raise TimeoutError("simulation still running")
        if self.error is not None:
            raise self.error
        return self.results
