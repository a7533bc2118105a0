"""Synthetic workload generation.

WorkloadGenerator.generate(pattern, count, write_ratio) returns a list of
MemoryAccess with sequential timestamps starting at 0. Each access is a
write with probability `write_ratio`, drawn independently.

Patterns:
- Sequential: 0, 4, 8, ...
- Random: uniform in [0, 10_000_000), word aligned
- Locality: a new random base every 50 accesses, offsets within 256 bytes
- Stride: 0, 64, 128, ...
- Loop: a window of min(count // 10, 100) words replayed 10 times
- Mixed: random runs of 20..49 accesses drawn from the patterns above
"""
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

WORD_SIZE = 4
STRIDE = 64
RANDOM_ADDRESS_SPACE = 10_000_000
LOCALITY_BASE_SPACE = 1_000_000
LOCALITY_SPAN = 256
LOCALITY_PHASE = 50
LOOP_ITERATIONS = 10
LOOP_MAX_WINDOW = 100
MIXED_MIN_RUN = 20
MIXED_MAX_RUN = 50


class AccessType(Enum):
    READ = "Read"
    WRITE = "Write"


class AccessPattern(Enum):
    SEQUENTIAL = "Sequential"
    RANDOM = "Random"
    LOCALITY = "Locality"
    STRIDE = "Stride"
    LOOP = "Loop"
    MIXED = "Mixed"

    @classmethod
    def from_name(cls, name: str) -> "AccessPattern":
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower()
        for pattern in cls:
            if pattern.value.lower() == key:
                return pattern
        raise ConfigurationError(f"unknown access pattern: {name!r}")


@dataclass(frozen=True)
class MemoryAccess:
    address: int
    type: AccessType
    timestamp: int

    @property
    def is_write(self) -> bool:
        return self.type is AccessType.WRITE


# patterns a Mixed workload draws its runs from
_MIXED_CHOICES = (
    AccessPattern.SEQUENTIAL,
    AccessPattern.RANDOM,
    AccessPattern.LOCALITY,
    AccessPattern.STRIDE,
    AccessPattern.LOOP,
)


class WorkloadGenerator:
    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random(seed)

    def generate(self, pattern, count: int, write_ratio: float = 0.2) -> List[MemoryAccess]:
        pattern = AccessPattern.from_name(pattern)
        if not isinstance(count, int) or count < 0:
            raise ConfigurationError(f"access count must be a non-negative integer, got {count!r}")
        if not 0.0 <= write_ratio <= 1.0:
            raise ConfigurationError(f"write ratio must be within [0, 1], got {write_ratio!r}")

        accesses = self._build(pattern, count, write_ratio)
        logger.info("generated %d %s accesses (write ratio %.2f)", len(accesses), pattern.value, write_ratio)
        return accesses

    def _build(self, pattern, count, wr):
        builders = {
            AccessPattern.SEQUENTIAL: self._sequential,
            AccessPattern.RANDOM: self._random,
            AccessPattern.LOCALITY: self._locality,
            AccessPattern.STRIDE: self._stride,
            AccessPattern.LOOP: self._loop,
            AccessPattern.MIXED: self._mixed,
        }
        return builders[pattern](count, wr)

    def _kind(self, write_ratio: float) -> AccessType:
        return AccessType.WRITE if self.rng.random() < write_ratio else AccessType.READ

    def _sequential(self, count, wr):
        return [MemoryAccess(i * WORD_SIZE, self._kind(wr), i) for i in range(count)]

    def _random(self, count, wr):
        seq = []
        for i in range(count):
            address = self.rng.randrange(RANDOM_ADDRESS_SPACE) // WORD_SIZE * WORD_SIZE
            seq.append(MemoryAccess(address, self._kind(wr), i))
        return seq

    def _locality(self, count, wr):
        seq = []
        base = 0
        for i in range(count):
            if i % LOCALITY_PHASE == 0:
                base = self.rng.randrange(LOCALITY_BASE_SPACE)
            offset = self.rng.randrange(LOCALITY_SPAN) // WORD_SIZE * WORD_SIZE
            seq.append(MemoryAccess(base + offset, self._kind(wr), i))
        return seq

    def _stride(self, count, wr):
        return [MemoryAccess(i * STRIDE, self._kind(wr), i) for i in range(count)]

    def _loop(self, count, wr):
        # a window of 0 (count < 10) produces nothing
        window = min(count // 10, LOOP_MAX_WINDOW)
        seq = []
        t = 0
        for _ in range(LOOP_ITERATIONS):
            for i in range(window):
                if t >= count:
                    return seq
                seq.append(MemoryAccess(i * WORD_SIZE, self._kind(wr), t))
                t += 1
        return seq

    def _mixed(self, count, wr):
        seq = []
        remaining = count
        t = 0
        while remaining > 0:
            n = min(self.rng.randrange(MIXED_MIN_RUN, MIXED_MAX_RUN), remaining)
            pattern = self.rng.choice(_MIXED_CHOICES)
            for a in self._build(pattern, n, wr):
                seq.append(MemoryAccess(a.address, a.type, t))
                t += 1
            # the budget shrinks by n even when a Loop run came up short
            remaining -= n
        return seq
