"""Statistics and exporter.
"""
import csv
import json
import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheLevelStatistics:
    name: str
    level: int
    hits: int = 0
    misses: int = 0

    @property
    def total_accesses(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        # percent
        return (self.hits / self.total_accesses * 100) if self.total_accesses else 0.0

    @property
    def miss_rate(self) -> float:
        return (self.misses / self.total_accesses * 100) if self.total_accesses else 0.0


@dataclass
class SimulationStatistics:
    total_accesses: int = 0
    read_accesses: int = 0
    write_accesses: int = 0
    total_latency: int = 0
    cache_level_stats: List[CacheLevelStatistics] = field(default_factory=list)
    main_memory_accesses: int = 0
    secondary_storage_accesses: int = 0

    def reset(self):
        # counters start from zero
        self.total_accesses = 0
        self.read_accesses = 0
        self.write_accesses = 0
        self.total_latency = 0
        self.cache_level_stats.clear()
        self.main_memory_accesses = 0
        self.secondary_storage_accesses = 0

    def record_access(self, is_write: bool, latency: int):
        # call this once per simulated access
        self.total_accesses += 1
        if is_write:
            self.write_accesses += 1
        else:
            self.read_accesses += 1
        self.total_latency += latency

    @property
    def average_latency(self) -> float:
        return (self.total_latency / self.total_accesses) if self.total_accesses else 0.0

    @property
    def total_hits(self) -> int:
        return sum(s.hits for s in self.cache_level_stats)

    @property
    def hit_rate(self) -> float:
        """Overall hit rate in percent: hits at any level over all accesses."""
        return (self.total_hits / self.total_accesses * 100) if self.total_accesses else 0.0

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['average_latency'] = self.average_latency
        data['hit_rate'] = self.hit_rate
        for entry, s in zip(data['cache_level_stats'], self.cache_level_stats):
            entry['hit_rate'] = s.hit_rate
            entry['miss_rate'] = s.miss_rate
        return data


def summary_text(stats: SimulationStatistics) -> str:
    """Human readable rendering of a statistics snapshot."""
    lines = [
        f"Total accesses: {stats.total_accesses:,}",
        f"Reads: {stats.read_accesses:,} | Writes: {stats.write_accesses:,}",
        "",
    ]
    for s in stats.cache_level_stats:
        lines.append(f"{s.name}: Hit={s.hits:,} ({s.hit_rate:.1f}%) | Miss={s.misses:,}")
    lines.append("")
    lines.append(f"RAM accesses: {stats.main_memory_accesses:,}")
    lines.append(f"Storage accesses: {stats.secondary_storage_accesses:,}")
    lines.append(f"Average latency: {stats.average_latency:.1f} cycles")
    return "\n".join(lines) + "\n"


def hit_rate_history(results: Iterable, sample_every: int = 100) -> List[float]:
    """Running overall hit rate (0..1) sampled every `sample_every` results
    and at the final result.
    """
    if sample_every < 1:
        raise ValueError("sample_every must be >= 1")
    history = []
    hits = 0
    n = 0
    for n, r in enumerate(results, start=1):
        if r.is_hit:
            hits += 1
        if n % sample_every == 0:
            history.append(hits / n)
    if n and n % sample_every != 0:
        history.append(hits / n)
    return history


def export_chart_json(hit_rates: List[float], stats: SimulationStatistics, fpath: str) -> str:
    """Export hit-rate history and stats to a JSON file. Returns saved path.
    """
    data = {
        'hit_rate_history': list(hit_rates),
        'stats': stats.to_dict(),
    }
    with open(fpath, 'w', encoding='utf-8') as fh:
        json.dump(data, fh, indent=2)
    logger.info("wrote statistics JSON to %s", fpath)
    return fpath


class Exporter:
    @staticmethod
    def export_stats_csv(path: str, stats: SimulationStatistics):
        header = ['total_accesses', 'read_accesses', 'write_accesses', 'total_latency',
                  'average_latency', 'hit_rate', 'main_memory_accesses', 'secondary_storage_accesses']
        row = [stats.total_accesses, stats.read_accesses, stats.write_accesses, stats.total_latency,
               stats.average_latency, stats.hit_rate, stats.main_memory_accesses,
               stats.secondary_storage_accesses]
        for s in stats.cache_level_stats:
            header.extend([f'{s.name}_hits', f'{s.name}_misses', f'{s.name}_hit_rate'])
            row.extend([s.hits, s.misses, s.hit_rate])
        with open(path, 'w', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(header)
            writer.writerow(row)
        logger.info("wrote statistics CSV to %s", path)

    @staticmethod
    def export_comparison_csv(path: str, hit_rates: Dict[str, float], best: Optional[str] = None):
        with open(path, 'w', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(['policy', 'hit_rate', 'best'])
            for name, rate in hit_rates.items():
                writer.writerow([name, rate, name == best])
        logger.info("wrote policy comparison CSV to %s", path)
