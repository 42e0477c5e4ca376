import os
import sys
from pathlib import Path

import pytest
from eth_account import Account

# Ensure the 'src' directory is on sys.path for imports in tests
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
for p in (SRC, ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

# Quiet service logging during tests
os.environ.setdefault("DISTRIBUTOR_LOG_LEVEL", "WARNING")

from distributor_api.chain import Chain  # noqa: E402
from distributor_api.distributor import MerkleDistributor  # noqa: E402
from distributor_api.token import InMemoryToken  # noqa: E402


@pytest.fixture
def wallets():
    """Ten deterministic local accounts with known private keys."""
    return [Account.from_key(bytes([i + 1]) * 32) for i in range(10)]


@pytest.fixture
def chain():
    return Chain()


@pytest.fixture
def token(chain):
    return InMemoryToken(chain, name="Token", symbol="TKN")


@pytest.fixture
def deploy(chain, token, wallets):
    """Deploy a distributor for `root`, paying sweeps to wallets[3] by default."""

    def _deploy(root, max_blocks=1000, owner=None, fund=None):
        d = MerkleDistributor(chain, token, root, max_blocks, owner or wallets[3].address)
        if fund is not None:
            token.set_balance(d.address, fund)
        return d

    return _deploy
