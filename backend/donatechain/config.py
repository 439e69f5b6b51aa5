"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - A single required chain id; no multi-chain support
    - get_settings() is cached (lru_cache): single instance per process
    - contract_address may be empty: the submitter and ledger reader reject it at call time

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support (ADR: developer UX)
    - Defaults target Sepolia and a local mirror service: works out-of-the-box for development
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from donatechain.core.domain_types import ChainSpec


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Required network (Sepolia)
    required_chain_id: int = 11_155_111
    chain_name: str = "Sepolia Testnet"
    chain_rpc_urls: list[str] = ["https://rpc.sepolia.org"]
    chain_explorer_urls: list[str] = ["https://sepolia.etherscan.io"]
    native_currency_name: str = "Sepolia ETH"
    native_currency_symbol: str = "ETH"
    native_currency_decimals: int = 18

    # Donation contract
    contract_address: str = "0x9700493119a4b4A8959aA67b0c083dF6DE233D80"

    @field_validator("contract_address", mode="before")
    @classmethod
    def strip_contract_address(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v

    # JSON-RPC node (read-only endpoint for ledger overrides)
    rpc_url: str = "https://rpc.sepolia.org"
    rpc_timeout_seconds: float = 30.0
    rpc_max_retries: int = 3
    rpc_base_delay_ms: int = 500
    rpc_max_delay_ms: int = 8_000

    # Ledger mirror service
    mirror_base_url: str = "http://localhost:5000/api"
    mirror_timeout_seconds: float = 10.0
    mirror_max_retries: int = 2
    mirror_base_delay_ms: int = 300
    mirror_max_delay_ms: int = 5_000

    # Donation lifecycle
    confirmation_timeout_seconds: float = 120.0
    receipt_poll_interval_seconds: float = 2.0

    # Read-after-write policy (poll ledger after a confirmed donation)
    read_after_write_attempts: int = 5
    read_after_write_interval_seconds: float = 3.0

    # API
    cors_origins: list[str] = [
        "http://localhost:5173", "http://localhost:3000",
    ]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    def chain_spec(self) -> ChainSpec:
        """The required chain, as offered to the wallet via addChain."""
        return ChainSpec(
            chain_id=self.required_chain_id,
            chain_name=self.chain_name,
            rpc_urls=tuple(self.chain_rpc_urls),
            block_explorer_urls=tuple(self.chain_explorer_urls),
            currency_name=self.native_currency_name,
            currency_symbol=self.native_currency_symbol,
            currency_decimals=self.native_currency_decimals,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
