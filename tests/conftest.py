"""Pytest configuration and shared fixtures."""

import json
from typing import Any, Dict, List

import pytest

from pricefeed.models import ChainCfg, Settings, TxResult

VALID_MNEMONIC = " ".join(["abandon"] * 11 + ["about"])
INVALID_MNEMONIC = " ".join(["abandon"] * 12)
CONTRACT = "nibi1qg5ega6dykkxc307y25pecuufrjkxkaggkkxh7nad0vhyhtuhw3sqaa3c5"


class FakeChainClient:
    """Stands in for ChainClient; records every message it is asked to broadcast."""

    def __init__(self, fail_tokens=()):
        self.address = "nibi1testsender"
        self.chain = ChainCfg()
        self.fail_tokens = set(fail_tokens)
        self.sent: List[Any] = []

    def sign_and_broadcast(self, msg) -> TxResult:
        payload = json.loads(msg.msg)
        token_id = payload["set_price"]["token_id"]
        self.sent.append(msg)
        if token_id in self.fail_tokens:
            raise RuntimeError(f"out of gas for token {token_id}")
        return TxResult(tx_hash=f"HASH{token_id}", gas_used=80_000,
                        gas_wanted=1_000_000, height=100 + len(self.sent))


@pytest.fixture
def rates_doc() -> Dict[str, Any]:
    """Sample `nibid q oracle exchange-rates -o json` output."""
    return {
        "exchange_rates": [
            {"pair": "ubtc:uusd", "exchange_rate": "65000.5"},
            {"pair": "ueth:uusd", "exchange_rate": "3400.25"},
            {"pair": "unibi:uusd", "exchange_rate": "0.021"},
            {"pair": "uatom:uusd", "exchange_rate": "8.1"},
            {"pair": "uusdc:uusd", "exchange_rate": "1.0001"},
            {"pair": "uusdt:uusd", "exchange_rate": "0.9998"},
        ]
    }


@pytest.fixture
def fake_client() -> FakeChainClient:
    return FakeChainClient()


@pytest.fixture
def settings() -> Settings:
    return Settings(mnemonic=VALID_MNEMONIC, contract_address=CONTRACT)
