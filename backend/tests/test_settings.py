"""Settings: environment-driven configuration.

Tests:
    - Defaults target Sepolia and the donation contract
    - Environment variables override defaults (case-insensitive)
    - chain_spec() renders the required chain for addChain
"""

from donatechain.config import Settings, get_settings


def test_defaults_target_sepolia():
    settings = Settings()
    assert settings.required_chain_id == 11_155_111
    assert settings.contract_address.startswith("0x")


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("REQUIRED_CHAIN_ID", "31337")
    monkeypatch.setenv("contract_address", "  0x9700493119a4b4A8959aA67b0c083dF6DE233D80 ")
    settings = Settings()
    assert settings.required_chain_id == 31337
    assert settings.contract_address == "0x9700493119a4b4A8959aA67b0c083dF6DE233D80"


def test_chain_spec():
    spec = Settings().chain_spec()
    assert spec.hex_chain_id == "0xaa36a7"
    assert spec.to_wallet_params()["chainName"] == "Sepolia Testnet"


def test_get_settings_cached():
    assert get_settings() is get_settings()
