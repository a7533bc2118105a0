"""Unit tests for the cache structures and a single cache level.

These tests focus on the level itself (no hierarchy routing). They cover:

- configuration geometry and rejection of bad configurations
- address decomposition into set index and tag
- cold fill and the first eviction of a set
- hit/miss counting, dirty bits and reset
"""

import pytest
from memhier.core.cache import EMPTY_TAG, CacheBlock, CacheLevel, CacheLevelConfig, CacheSet
from memhier.core.errors import ConfigurationError, InvalidAccessError
from memhier.core.replacement_policies import ReplacementPolicy


@pytest.mark.parametrize('total,block,assoc', [
    (64, 4, 4),
    (32 * 1024, 64, 8),
    (256 * 1024, 64, 8),
    (8192 * 1024, 64, 16),
    (128, 16, 8),
])
def test_geometry_is_exact(total, block, assoc):
    cfg = CacheLevelConfig("L1", total, block, assoc, 4)
    cfg.validate()
    assert cfg.number_of_sets * assoc * block == total
    level = CacheLevel(cfg, 1)
    assert len(level.sets) == cfg.number_of_sets
    assert all(len(s) == assoc for s in level.sets)
    assert all(len(b.data) == block for b in level.sets[0])


@pytest.mark.parametrize('total,block,assoc', [
    (100, 64, 1),   # not divisible
    (64, 64, 2),    # zero sets
    (96, 16, 4),    # 96 / 64 leaves a remainder
    (0, 4, 1),
    (64, 0, 1),
    (64, 4, 0),
])
def test_bad_geometry_is_rejected(total, block, assoc):
    cfg = CacheLevelConfig("L2", total, block, assoc, 4)
    with pytest.raises(ConfigurationError):
        CacheLevel(cfg, 1)


def test_negative_latency_is_rejected():
    with pytest.raises(ConfigurationError):
        CacheLevelConfig("L1", 64, 4, 4, -1).validate()


def test_decode_address(one_set_config):
    # 4 sets of 4 B blocks: block_addr = a // 4, set = block_addr % 4, tag = block_addr // 4
    level = CacheLevel(one_set_config, 1)
    assert level.decode(0) == (0, 0)
    assert level.decode(3) == (0, 0)
    assert level.decode(4) == (1, 0)
    assert level.decode(16) == (0, 1)
    assert level.decode(64) == (0, 4)
    assert level.decode(0x1234) == ((0x1234 // 4) % 4, (0x1234 // 4) // 4)


@pytest.mark.parametrize('policy', list(ReplacementPolicy))
def test_cold_fill_then_single_eviction(policy, one_set_config):
    # Input: 4-way set 0, tags 0..3 then tag 4.
    # Expected: first four are misses without eviction, the fifth evicts
    # exactly one of the resident tags whatever the policy.
    level = CacheLevel(one_set_config, 1, policy)
    for tag in range(4):
        res = level.access(tag * 16)
        assert res.hit is False
        assert res.evicted_tag == EMPTY_TAG
        assert res.set_index == 0
    res = level.access(64)
    assert res.hit is False
    assert res.evicted_tag in (0, 1, 2, 3)
    tags = sorted(b.tag for b in level.sets[0])
    expected = sorted([t for t in range(4) if t != res.evicted_tag] + [4])
    assert tags == expected


def test_end_to_end_lru_evicts_tag_zero(one_set_config):
    level = CacheLevel(one_set_config, 1, ReplacementPolicy.LRU)
    for addr in (0, 16, 32, 48):
        assert level.access(addr) == (False, EMPTY_TAG, 0)
    res = level.access(64)
    assert res.hit is False
    assert res.evicted_tag == 0
    assert level.hits == 0
    assert level.misses == 5


def test_hit_counting_and_clock(one_set_config):
    level = CacheLevel(one_set_config, 1)
    assert level.access(0).hit is False
    assert level.access(2).hit is True     # same 4 B block
    assert level.access(0).hit is True
    assert (level.hits, level.misses) == (2, 1)
    assert level.clock == 3
    block = level.sets[0].find_block(0)
    assert block.last_access_time == 3


def test_negative_address_never_enters_a_set(one_set_config):
    # -4 would be stored as tag -1 in set 3 and its later eviction would
    # look like a cold fill
    level = CacheLevel(one_set_config, 1)
    with pytest.raises(InvalidAccessError):
        level.access(-4)
    assert level.clock == 0
    assert (level.hits, level.misses) == (0, 0)
    for addr in (12, 28, 44, 60):
        assert level.access(addr).evicted_tag == EMPTY_TAG
    # set 3 is now full of tags 0..3, so the next fill must name its victim
    assert level.access(76).evicted_tag == 0


def test_dirty_bit_tracking(one_set_config):
    level = CacheLevel(one_set_config, 1)
    level.access(0, is_write=False)
    block = level.sets[0].find_block(0)
    assert block.dirty is False
    level.access(0, is_write=True)
    assert block.dirty is True
    # a read hit never clears it
    level.access(0, is_write=False)
    assert block.dirty is True
    # a write miss allocates dirty
    level.access(16, is_write=True)
    assert level.sets[0].find_block(1).dirty is True


def test_level_reset_clears_everything(one_set_config):
    level = CacheLevel(one_set_config, 1, ReplacementPolicy.ROUND_ROBIN)
    for addr in (0, 16, 32, 48, 64):
        level.access(addr, is_write=True)
    assert level.sets[0].circular_pointer == 1
    level.reset()
    assert (level.hits, level.misses, level.clock) == (0, 0, 0)
    for s in level.sets:
        assert s.circular_pointer == 0
        for b in s:
            assert b.valid is False
            assert b.dirty is False
            assert b.tag == EMPTY_TAG
            assert b.access_count == 0
            assert b.reference_bit is False


def test_block_and_set_helpers():
    s = CacheSet(associativity=2, block_size=8)
    assert s.find_block(5) is None
    assert s.find_empty_block() is s[0]
    s[0].tag, s[0].valid = 5, True
    assert s.find_block(5) is s[0]
    assert s.find_empty_block() is s[1]
    s[1].valid = True
    assert s.find_empty_block() is None
    # an invalid block never matches, even with the right tag
    b = CacheBlock(4)
    b.tag = 7
    s.blocks.append(b)
    assert s.find_block(7) is None
