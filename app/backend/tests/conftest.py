"""
Shared fixtures.
"""

import pytest

from tests.fakes import ALPHA, BETA, COLLECTOR, GAMMA, ORPHAN, TOKENS, Fleet


@pytest.fixture
def fleet() -> Fleet:
    """Collector, three token owners and one wallet without a token."""
    return Fleet(wallets=[COLLECTOR, ALPHA, BETA, GAMMA, ORPHAN], token_map=TOKENS)
