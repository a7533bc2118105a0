"""Replacement policy implementations for the memory hierarchy simulator.

This module provides eight policies with a small, consistent API so a
cache level can call them interchangeably:

- LRU, FIFO, Random, LFU, MRU, RoundRobin, SecondChance, LFRU

API (methods):
- select_victim(cache_set, current_time): choose the block to overwrite
- on_access(block, current_time, is_new_block): update block bookkeeping

Every strategy returns the first empty block of the set (by way order)
before running its own comparison. Comparisons keep the first block on
ties. Strategies never keep a reference to the set or block they were
handed; the owning cache level does.

The strategies avoid printing or logging in the core methods; callers
can inspect block state if they need to show it.
"""

import random
from enum import Enum
from typing import Optional

from .errors import ConfigurationError


class ReplacementPolicy(Enum):
    LRU = "LRU"
    FIFO = "FIFO"
    RANDOM = "Random"
    LFU = "LFU"
    MRU = "MRU"
    ROUND_ROBIN = "RoundRobin"
    SECOND_CHANCE = "SecondChance"
    LFRU = "LFRU"

    @classmethod
    def from_name(cls, name: str) -> "ReplacementPolicy":
        """Parse a policy name, ignoring case, spaces, dashes and underscores."""
        if isinstance(name, cls):
            return name
        key = str(name).replace(" ", "").replace("-", "").replace("_", "").lower()
        for policy in cls:
            if policy.value.lower() == key:
                return policy
        raise ConfigurationError(f"unknown replacement policy: {name!r}")


class ReplacementStrategy:
    name = ""
    description = ""

    def select_victim(self, cache_set, current_time: int):
        raise NotImplementedError

    def on_access(self, block, current_time: int, is_new_block: bool) -> None:
        raise NotImplementedError


class LRUStrategy(ReplacementStrategy):
    name = "LRU"
    description = "Least Recently Used: the block that has gone longest without an access is replaced."

    def select_victim(self, cache_set, current_time):
        empty = cache_set.find_empty_block()
        if empty is not None:
            return empty
        victim = cache_set[0]
        for block in cache_set:
            if block.last_access_time < victim.last_access_time:
                victim = block
        return victim

    def on_access(self, block, current_time, is_new_block):
        block.last_access_time = current_time


class FIFOStrategy(ReplacementStrategy):
    name = "FIFO"
    description = "First In First Out: the oldest inserted block is replaced."

    def select_victim(self, cache_set, current_time):
        empty = cache_set.find_empty_block()
        if empty is not None:
            return empty
        victim = cache_set[0]
        for block in cache_set:
            if block.insertion_time < victim.insertion_time:
                victim = block
        return victim

    def on_access(self, block, current_time, is_new_block):
        # re-hits never refresh the insertion order
        if is_new_block:
            block.insertion_time = current_time


class RandomStrategy(ReplacementStrategy):
    name = "Random"
    description = "Random: a uniformly random block is replaced."

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random()

    def select_victim(self, cache_set, current_time):
        empty = cache_set.find_empty_block()
        if empty is not None:
            return empty
        return cache_set[self.rng.randrange(len(cache_set))]

    def on_access(self, block, current_time, is_new_block):
        pass


class LFUStrategy(ReplacementStrategy):
    name = "LFU"
    description = "Least Frequently Used: the block with the fewest accesses is replaced."

    def select_victim(self, cache_set, current_time):
        empty = cache_set.find_empty_block()
        if empty is not None:
            return empty
        victim = cache_set[0]
        for block in cache_set:
            if block.access_count < victim.access_count:
                victim = block
        return victim

    def on_access(self, block, current_time, is_new_block):
        block.access_count = 1 if is_new_block else block.access_count + 1
        block.last_access_time = current_time


class MRUStrategy(ReplacementStrategy):
    name = "MRU"
    description = "Most Recently Used: the block accessed most recently is replaced."

    def select_victim(self, cache_set, current_time):
        empty = cache_set.find_empty_block()
        if empty is not None:
            return empty
        victim = cache_set[0]
        for block in cache_set:
            if block.last_access_time > victim.last_access_time:
                victim = block
        return victim

    def on_access(self, block, current_time, is_new_block):
        block.last_access_time = current_time


class RoundRobinStrategy(ReplacementStrategy):
    name = "Round Robin"
    description = "Round Robin: blocks are replaced in turn."

    def select_victim(self, cache_set, current_time):
        empty = cache_set.find_empty_block()
        if empty is not None:
            return empty
        victim = cache_set[cache_set.circular_pointer]
        cache_set.advance_pointer()
        return victim

    def on_access(self, block, current_time, is_new_block):
        pass


class SecondChanceStrategy(ReplacementStrategy):
    name = "Second Chance"
    description = "Second Chance: FIFO clock scan that spares blocks with the reference bit set once."

    def select_victim(self, cache_set, current_time):
        empty = cache_set.find_empty_block()
        if empty is not None:
            return empty
        for _ in range(2 * len(cache_set)):
            block = cache_set[cache_set.circular_pointer]
            cache_set.advance_pointer()
            if not block.reference_bit:
                return block
            block.reference_bit = False
        return cache_set[cache_set.circular_pointer]

    def on_access(self, block, current_time, is_new_block):
        block.reference_bit = True
        block.last_access_time = current_time
        if is_new_block:
            block.insertion_time = current_time


class LFRUStrategy(ReplacementStrategy):
    """Hybrid of LFU and LRU.

    score = 0.6 * count / max_count + 0.4 * (1 - age / max_age)
    where age = current_time - last_access_time and both maxima are taken
    over the set, floored at 1. The lowest score is replaced.
    """

    name = "LFRU"
    description = "LFRU: weighted mix of access frequency (60%) and recency (40%)."

    FREQUENCY_WEIGHT = 0.6
    RECENCY_WEIGHT = 0.4

    def score(self, block, max_count: int, max_recency: int, current_time: int) -> float:
        freq_score = block.access_count / max_count
        rec_score = 1.0 - (current_time - block.last_access_time) / max_recency
        return self.FREQUENCY_WEIGHT * freq_score + self.RECENCY_WEIGHT * rec_score

    def select_victim(self, cache_set, current_time):
        empty = cache_set.find_empty_block()
        if empty is not None:
            return empty
        max_count = max(1, max(b.access_count for b in cache_set))
        max_recency = max(1, max(current_time - b.last_access_time for b in cache_set))

        victim = None
        min_score = float("inf")
        for block in cache_set:
            s = self.score(block, max_count, max_recency, current_time)
            if s < min_score:
                min_score = s
                victim = block
        return victim if victim is not None else cache_set[0]

    def on_access(self, block, current_time, is_new_block):
        block.last_access_time = current_time
        block.access_count = 1 if is_new_block else block.access_count + 1
        if is_new_block:
            block.insertion_time = current_time


_STRATEGIES = {
    ReplacementPolicy.LRU: LRUStrategy,
    ReplacementPolicy.FIFO: FIFOStrategy,
    ReplacementPolicy.RANDOM: RandomStrategy,
    ReplacementPolicy.LFU: LFUStrategy,
    ReplacementPolicy.MRU: MRUStrategy,
    ReplacementPolicy.ROUND_ROBIN: RoundRobinStrategy,
    ReplacementPolicy.SECOND_CHANCE: SecondChanceStrategy,
    ReplacementPolicy.LFRU: LFRUStrategy,
}


def create_strategy(policy, rng: Optional[random.Random] = None) -> ReplacementStrategy:
    """Build a fresh strategy for `policy` (enum member or name).

    `rng` is only used by the Random policy.
    """
    policy = ReplacementPolicy.from_name(policy)
    if policy is ReplacementPolicy.RANDOM:
        return RandomStrategy(rng)
    return _STRATEGIES[policy]()


def policy_description(policy) -> str:
    return _STRATEGIES[ReplacementPolicy.from_name(policy)].description


__all__ = [
    "ReplacementPolicy", "ReplacementStrategy", "LRUStrategy", "FIFOStrategy",
    "RandomStrategy", "LFUStrategy", "MRUStrategy", "RoundRobinStrategy",
    "SecondChanceStrategy", "LFRUStrategy", "create_strategy", "policy_description",
]
