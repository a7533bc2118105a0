"""Test configuration for pytest.

Ensure the repository root is on sys.path so tests can import the `memhier`
package without installing it or setting PYTHONPATH externally.
"""
import os
import sys

import pytest

# Compute project root: two directories above this file (memhier/tests -> memhier -> project root)
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from memhier.core.cache import CacheLevelConfig  # noqa: E402


@pytest.fixture
def one_set_config():
    # 64 B / (4 B x 4 ways) -> 4 sets; addresses 0, 16, 32, 48, 64 all land in set 0
    return CacheLevelConfig(name="L1", total_size=64, block_size=4, associativity=4, access_latency=1)
