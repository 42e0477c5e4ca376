from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .chain import Chain
from .crypto import parse_quantity
from .distributor import MerkleDistributor
from .models import MerkleDistributorInfo
from .settings import Settings
from .token import InMemoryToken

log = logging.getLogger(__name__)


@dataclass
class Runtime:
    chain: Chain
    token: InMemoryToken
    distributor: MerkleDistributor
    info: MerkleDistributorInfo
    settings: Settings


def load_info(path: str) -> MerkleDistributorInfo:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(
            f"distribution artifact not found: {path}; run `distributor_cli generate-merkle-root` first"
        )
    return MerkleDistributorInfo.model_validate(json.loads(p.read_text()))


def build_runtime(settings: Optional[Settings] = None) -> Runtime:
    """Stand up chain, token and distributor for the configured artifact."""
    settings = settings or Settings()
    info = load_info(settings.info_path)
    chain = Chain(chain_id=settings.chain_id)
    token = InMemoryToken(chain, name=settings.token_name, symbol=settings.token_symbol)
    distributor = MerkleDistributor(
        chain, token, info.merkle_root, settings.max_blocks, settings.owner
    )
    if settings.fund_pool:
        token.set_balance(distributor.address, parse_quantity(info.token_total))
    log.info(
        "distributor ready root=%s claims=%d deadline=%d",
        info.merkle_root,
        len(info.claims),
        distributor.deadline,
    )
    return Runtime(chain, token, distributor, info, settings)
