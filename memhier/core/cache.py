"""Core cache structures

This file provides the set-associative cache model used by the simulator.
Behavior:
- A level is composed of sets; each set has `associativity` ways.
  block_addr = address // block_size
  set_index = block_addr % num_sets
  tag = block_addr // num_sets
- Each level keeps its own logical clock, bumped once per access. Recency
  based policies compare these clock values, never wall-clock time.
- Access returns LevelAccess(hit, evicted_tag, set_index); evicted_tag is
  EMPTY_TAG when nothing valid was replaced.
"""

import logging
from dataclasses import dataclass
from typing import List, NamedTuple, Optional

from .errors import ConfigurationError, InvalidAccessError
from .replacement_policies import ReplacementPolicy, ReplacementStrategy, create_strategy

logger = logging.getLogger(__name__)

EMPTY_TAG = -1


class CacheBlock:
    """container for a cache line (way).

    Fields:
    - tag: the tag stored in the line (EMPTY_TAG when empty)
    - valid: whether the line currently holds useful data
    - dirty: whether the line was written
    - data: raw payload buffer, block_size bytes
    - last_access_time / access_count / insertion_time / reference_bit:
      bookkeeping owned by the replacement strategies
    """

    def __init__(self, block_size: int):
        self.data = bytearray(block_size)
        self.reset()

    def reset(self):
        self.tag = EMPTY_TAG
        self.valid = False
        self.dirty = False
        self.last_access_time = 0
        self.access_count = 0
        self.insertion_time = 0
        self.reference_bit = False
        self.data[:] = bytes(len(self.data))

    def __repr__(self):
        return (f"CacheBlock(tag={self.tag}, valid={self.valid}, dirty={self.dirty}, "
                f"last={self.last_access_time}, count={self.access_count}, "
                f"inserted={self.insertion_time}, ref={self.reference_bit})")


class CacheSet:
    """A fixed row of `associativity` blocks plus the circular pointer
    used by RoundRobin and SecondChance.
    """

    def __init__(self, associativity: int, block_size: int):
        self.blocks: List[CacheBlock] = [CacheBlock(block_size) for _ in range(associativity)]
        self.circular_pointer = 0

    def __len__(self):
        return len(self.blocks)

    def __iter__(self):
        return iter(self.blocks)

    def __getitem__(self, index):
        return self.blocks[index]

    def advance_pointer(self):
        self.circular_pointer = (self.circular_pointer + 1) % len(self.blocks)

    def find_block(self, tag: int) -> Optional[CacheBlock]:
        for block in self.blocks:
            if block.valid and block.tag == tag:
                return block
        return None

    def find_empty_block(self) -> Optional[CacheBlock]:
        for block in self.blocks:
            if not block.valid:
                return block
        return None

    def reset(self):
        for block in self.blocks:
            block.reset()
        self.circular_pointer = 0


@dataclass
class CacheLevelConfig:
    """Geometry and latency of one cache tier.

    Sizes are in bytes, latency in cycles.
    """

    name: str
    total_size: int
    block_size: int
    associativity: int
    access_latency: int

    @property
    def number_of_sets(self) -> int:
        return self.total_size // (self.block_size * self.associativity)

    def validate(self):
        """Raise ConfigurationError unless the geometry yields a whole,
        positive number of sets.
        """
        for field_name in ("total_size", "block_size", "associativity"):
            value = getattr(self, field_name)
            if not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"{self.name}: {field_name} must be a positive integer, got {value!r}")
        if not isinstance(self.access_latency, int) or self.access_latency < 0:
            raise ConfigurationError(f"{self.name}: access_latency must be >= 0, got {self.access_latency!r}")
        way_bytes = self.block_size * self.associativity
        if self.total_size % way_bytes != 0:
            raise ConfigurationError(
                f"{self.name}: total size {self.total_size} is not divisible by "
                f"block size x associativity ({self.block_size} x {self.associativity})")
        if self.number_of_sets == 0:
            raise ConfigurationError(f"{self.name}: configuration yields zero sets")


class LevelAccess(NamedTuple):
    hit: bool
    evicted_tag: int
    set_index: int


class CacheLevel:
    """One tier of the hierarchy: owns its sets, its strategy and its clock."""

    def __init__(self, config: CacheLevelConfig, level: int,
                 policy: ReplacementPolicy = ReplacementPolicy.LRU,
                 strategy: Optional[ReplacementStrategy] = None):
        try:
            config.validate()
        except ConfigurationError as exc:
            logger.warning("rejecting cache level %s: %s", config.name, exc)
            raise
        self.config = config
        self.level = level
        self.strategy = strategy if strategy is not None else create_strategy(policy)
        self.num_sets = config.number_of_sets
        self.sets: List[CacheSet] = [CacheSet(config.associativity, config.block_size)
                                     for _ in range(self.num_sets)]
        self.hits = 0
        self.misses = 0
        self._time = 0
        logger.info("%s: %d sets x %d ways x %d B, %s, %d cycles",
                    config.name, self.num_sets, config.associativity, config.block_size,
                    self.strategy.name, config.access_latency)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def clock(self) -> int:
        return self._time

    def decode(self, address: int):
        """Decode address into (set_index, tag)."""
        block_addr = address // self.config.block_size
        return block_addr % self.num_sets, block_addr // self.num_sets

    def access(self, address: int, is_write: bool = False) -> LevelAccess:
        if address < 0:
            raise InvalidAccessError(f"negative address: {address}")
        self._time += 1
        set_index, tag = self.decode(address)
        cache_set = self.sets[set_index]

        block = cache_set.find_block(tag)
        if block is not None:
            self.hits += 1
            self.strategy.on_access(block, self._time, False)
            if is_write:
                block.dirty = True
            logger.debug("%s hit: addr=0x%X set=%d tag=%d", self.name, address, set_index, tag)
            return LevelAccess(True, EMPTY_TAG, set_index)

        self.misses += 1
        victim = self.strategy.select_victim(cache_set, self._time)
        evicted_tag = victim.tag if victim.valid else EMPTY_TAG
        victim.tag = tag
        victim.valid = True
        victim.dirty = is_write
        self.strategy.on_access(victim, self._time, True)
        if evicted_tag != EMPTY_TAG:
            logger.debug("%s miss: addr=0x%X set=%d tag=%d evicted tag %d",
                         self.name, address, set_index, tag, evicted_tag)
        else:
            logger.debug("%s miss: addr=0x%X set=%d tag=%d (cold fill)", self.name, address, set_index, tag)
        return LevelAccess(False, evicted_tag, set_index)

    def reset(self):
        """Clear contents, counters and the clock."""
        for s in self.sets:
            s.reset()
        self.hits = 0
        self.misses = 0
        self._time = 0
