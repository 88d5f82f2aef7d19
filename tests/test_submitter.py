"""Tests for set_price message building and submission."""

import asyncio
import base64
import json
from unittest.mock import Mock

import pytest

from pricefeed.errors import BroadcastError
from pricefeed.submitter import PriceSubmitter, b64_msg, encode_msg, set_price_msg

from conftest import CONTRACT, FakeChainClient


class TestMessage:
    def test_payload_shape(self) -> None:
        assert set_price_msg(1, "65000.5") == {"set_price": {"token_id": 1, "price_usd": "65000.5"}}

    def test_encoded_json(self) -> None:
        raw = encode_msg(set_price_msg(3, "8.1"))
        assert raw == b'{"set_price":{"token_id":3,"price_usd":"8.1"}}'

    def test_base64_form(self) -> None:
        payload = set_price_msg(2, "3400.25")
        assert json.loads(base64.b64decode(b64_msg(payload))) == payload

    def test_build_execute_msg(self, fake_client) -> None:
        msg = PriceSubmitter(fake_client, CONTRACT).build(5, "0.9998")
        assert msg.sender == "nibi1testsender"
        assert msg.contract == CONTRACT
        assert len(msg.funds) == 0
        assert json.loads(msg.msg) == {"set_price": {"token_id": 5, "price_usd": "0.9998"}}


class TestPriceSubmitter:
    def test_submit_success(self, fake_client) -> None:
        counter = Mock()
        sub = PriceSubmitter(fake_client, CONTRACT, counter=counter)
        res = asyncio.run(sub.submit(1, "65000.5"))
        assert res.tx_hash == "HASH1"
        assert res.gas_wanted == 1_000_000
        assert len(fake_client.sent) == 1
        counter.labels.assert_called_once_with(status="ok")
        counter.labels.return_value.inc.assert_called_once()

    def test_submit_failure_wrapped(self) -> None:
        client = FakeChainClient(fail_tokens={2})
        counter = Mock()
        sub = PriceSubmitter(client, CONTRACT, counter=counter)
        with pytest.raises(BroadcastError) as exc:
            asyncio.run(sub.submit(2, "3400.25"))
        assert exc.value.token_id == 2
        assert isinstance(exc.value.__cause__, RuntimeError)
        counter.labels.assert_called_once_with(status="fail")

    def test_no_counter(self, fake_client) -> None:
        sub = PriceSubmitter(fake_client, CONTRACT)
        assert asyncio.run(sub.submit(4, "1.0001")).height == 101
