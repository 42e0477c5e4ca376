from __future__ import annotations
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # Artifact produced by `distributor_cli generate-merkle-root`
    info_path: str = Field(default="./merkle.json", alias="DISTRIBUTOR_INFO_PATH")

    owner: str = Field(
        default="0x000000000000000000000000000000000000dEaD", alias="DISTRIBUTOR_OWNER"
    )
    max_blocks: int = Field(default=1000, alias="DISTRIBUTOR_MAX_BLOCKS")

    token_name: str = Field(default="Token", alias="DISTRIBUTOR_TOKEN_NAME")
    token_symbol: str = Field(default="TKN", alias="DISTRIBUTOR_TOKEN_SYMBOL")
    chain_id: int = Field(default=1, alias="DISTRIBUTOR_CHAIN_ID")

    # Fund the pool with the artifact's tokenTotal at startup
    fund_pool: bool = Field(default=True, alias="DISTRIBUTOR_FUND_POOL")

    # Expose POST /dev/mine to advance the block clock
    allow_dev_mining: bool = Field(default=False, alias="DISTRIBUTOR_ALLOW_DEV_MINING")

    # Global request size limit enforced by middleware (bytes)
    max_request_bytes: int = Field(default=262144, alias="DISTRIBUTOR_MAX_REQUEST_BYTES")

    log_level: str = Field(default="INFO", alias="DISTRIBUTOR_LOG_LEVEL")

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()  # load at import
