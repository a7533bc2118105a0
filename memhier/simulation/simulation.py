"""Simulation driver used by front ends (the command line, tests, a UI).

Converts a settings object into cache level configs, generates or parses
the access sequence and forwards it to a SimulatorService.
"""
import json
import logging
from dataclasses import dataclass, field, fields, asdict
from typing import Dict, List, Optional, Sequence

from memhier.core.cache import CacheLevelConfig
from memhier.core.errors import ConfigurationError
from memhier.core.replacement_policies import ReplacementPolicy
from memhier.core.simulator import AccessResult, SimulatorService
from memhier.core.workload import AccessType, MemoryAccess, WorkloadGenerator

logger = logging.getLogger(__name__)

KIB = 1024


@dataclass
class LevelSettings:
    """One row of the level form. Size is in KiB."""

    name: str
    size_kib: int
    block_size: int
    associativity: int
    latency: int
    enabled: bool = True

    def to_config(self) -> CacheLevelConfig:
        return CacheLevelConfig(
            name=self.name,
            total_size=self.size_kib * KIB,
            block_size=self.block_size,
            associativity=self.associativity,
            access_latency=self.latency,
        )


def _default_levels() -> List[LevelSettings]:
    return [
        LevelSettings("L1", 32, 64, 8, 4),
        LevelSettings("L2", 256, 64, 8, 12),
        LevelSettings("L3", 8192, 64, 16, 40),
    ]


@dataclass
class SimulationSettings:
    levels: List[LevelSettings] = field(default_factory=_default_levels)
    ram_latency: int = 100
    storage_latency: int = 10000
    access_count: int = 10000
    write_ratio: float = 0.2
    policy: str = "LRU"
    pattern: str = "Sequential"
    seed: Optional[int] = None

    def build_configs(self) -> List[CacheLevelConfig]:
        configs = [lvl.to_config() for lvl in self.levels if lvl.enabled]
        if not configs:
            logger.warning("no cache level enabled")
            raise ConfigurationError("at least one cache level must be enabled")
        for cfg in configs:
            cfg.validate()
        return configs

    @classmethod
    def from_dict(cls, data: Dict) -> "SimulationSettings":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"unknown settings: {', '.join(sorted(unknown))}")
        values = dict(data)
        if 'levels' in values:
            if not isinstance(values['levels'], list):
                raise ConfigurationError("levels must be a list of objects")
            level_keys = {f.name for f in fields(LevelSettings)}
            levels = []
            for entry in values['levels']:
                if not isinstance(entry, dict):
                    raise ConfigurationError(f"level settings must be an object, got {entry!r}")
                extra = set(entry) - level_keys
                if extra:
                    raise ConfigurationError(f"unknown level settings: {', '.join(sorted(extra))}")
                try:
                    levels.append(LevelSettings(**entry))
                except TypeError as exc:
                    raise ConfigurationError(f"incomplete level settings: {exc}") from exc
            values['levels'] = levels
        settings = cls(**values)
        settings.check_types()
        return settings

    def check_types(self):
        """Raise ConfigurationError for values of the wrong JSON type."""
        for lvl in self.levels:
            _expect(f"{lvl.name!r}.name", lvl.name, str)
            for name in ("size_kib", "block_size", "associativity", "latency"):
                _expect(f"{lvl.name}.{name}", getattr(lvl, name), int)
            _expect(f"{lvl.name}.enabled", lvl.enabled, bool)
        for name in ("ram_latency", "storage_latency", "access_count"):
            _expect(name, getattr(self, name), int)
        _expect("write_ratio", self.write_ratio, (int, float))
        _expect("policy", self.policy, str)
        _expect("pattern", self.pattern, str)
        if self.seed is not None:
            _expect("seed", self.seed, int)

    @classmethod
    def load(cls, path: str) -> "SimulationSettings":
        with open(path, encoding='utf-8') as fh:
            try:
                data = json.load(fh)
            except json.JSONDecodeError as exc:
                raise ConfigurationError(f"{path}: invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path}: settings must be a JSON object")
        return cls.from_dict(data)

    def to_dict(self) -> Dict:
        return asdict(self)


def _expect(name, value, types):
    # bool is an int subclass but never a valid number here
    if isinstance(value, bool) and types is not bool:
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if not isinstance(value, types):
        raise ConfigurationError(f"{name} has the wrong type: {value!r}")


def _parse_address(token: str) -> int:
    # 0x prefix or any hex letter means hex, otherwise decimal
    s = token.strip()
    try:
        if s.lower().startswith('0x'):
            return int(s[2:], 16)
        if any(c in 'abcdefABCDEF' for c in s):
            return int(s, 16)
        return int(s, 10)
    except ValueError as exc:
        raise ConfigurationError(f"invalid address: {token!r}") from exc


def parse_manual_sequence(text: str) -> List[MemoryAccess]:
    """Parse "0x10, 20, 3f-ff" style input.

    Items are comma separated. "addr-data" is a store (the payload is not
    modelled), anything else is a load.
    """
    accesses = []
    items = [it.strip() for it in text.split(',') if it.strip()]
    for t, item in enumerate(items):
        if '-' in item:
            addr, _data = item.split('-', 1)
            accesses.append(MemoryAccess(_parse_address(addr), AccessType.WRITE, t))
        else:
            accesses.append(MemoryAccess(_parse_address(item), AccessType.READ, t))
    return accesses


@dataclass
class PolicyComparison:
    hit_rates: Dict[str, float]
    best: str
    best_hit_rate: float


class Simulation:
    def __init__(self, settings: Optional[SimulationSettings] = None):
        self.settings = settings or SimulationSettings()
        self.generator = WorkloadGenerator(seed=self.settings.seed)
        self.simulator: Optional[SimulatorService] = None

    def _create_simulator(self, policy=None) -> SimulatorService:
        s = self.settings
        return SimulatorService(
            s.build_configs(),
            policy if policy is not None else s.policy,
            main_memory_latency=s.ram_latency,
            storage_latency=s.storage_latency,
            seed=s.seed,
        )

    def generate(self, pattern=None, count: Optional[int] = None,
                 write_ratio: Optional[float] = None) -> List[MemoryAccess]:
        s = self.settings
        return self.generator.generate(
            pattern if pattern is not None else s.pattern,
            count if count is not None else s.access_count,
            write_ratio if write_ratio is not None else s.write_ratio,
        )

    def run_simulation(self, accesses: Optional[Sequence[MemoryAccess]] = None,
                       progress=None) -> List[AccessResult]:
        """Run one workload on a fresh simulator.

        Without explicit accesses the configured pattern is generated.
        The simulator stays available as `self.simulator` for statistics.
        """
        self.simulator = self._create_simulator()
        if accesses is None:
            accesses = self.generate()
        logger.info("running %d accesses, policy %s", len(accesses), self.simulator.policy.value)
        return self.simulator.run_bulk(accesses, progress)

    def run_sequence(self, text: str, progress=None) -> List[AccessResult]:
        return self.run_simulation(parse_manual_sequence(text), progress)

    def compare_policies(self, pattern=None, count: Optional[int] = None,
                         write_ratio: Optional[float] = None,
                         policies: Optional[Sequence] = None) -> PolicyComparison:
        """Run one generated workload against a fresh simulator per policy."""
        chosen = [ReplacementPolicy.from_name(p) for p in policies] if policies else list(ReplacementPolicy)
        self.settings.build_configs()
        accesses = self.generate(pattern, count, write_ratio)

        hit_rates: Dict[str, float] = {}
        for policy in chosen:
            sim = self._create_simulator(policy)
            sim.run_bulk(accesses)
            hit_rates[policy.value] = sim.statistics().hit_rate
            logger.info("%s: hit rate %.2f%%", policy.value, hit_rates[policy.value])

        best = None
        for name, rate in hit_rates.items():
            if best is None or rate > hit_rates[best]:
                best = name
        return PolicyComparison(hit_rates=hit_rates, best=best, best_hit_rate=hit_rates[best])
