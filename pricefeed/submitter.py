import asyncio, base64, json, logging
from datetime import datetime, timezone
from typing import Any

from cosmpy.protos.cosmwasm.wasm.v1.tx_pb2 import MsgExecuteContract

from .errors import BroadcastError
from .models import TxResult

def set_price_msg(token_id: int, price: str) -> dict:
    # price 는 nibid 출력 문자열 그대로 (단위 변환 없음)
    return {"set_price": {"token_id": int(token_id), "price_usd": price}}

def encode_msg(payload: dict) -> bytes:
    return json.dumps(payload, separators=(",", ":")).encode()

def b64_msg(payload: dict) -> str:
    return base64.b64encode(encode_msg(payload)).decode()


class PriceSubmitter:
    def __init__(self,
                 client,                  # ChainClient (.address, .sign_and_broadcast)
                 contract: str,
                 counter: Any = None):    # prometheus_client.Counter ['status']
        self.client   = client
        self.contract = contract
        self.counter  = counter
        self.log      = logging.getLogger("PriceSubmitter")

    def build(self, token_id: int, price: str) -> MsgExecuteContract:
        return MsgExecuteContract(sender=self.client.address,
                                  contract=self.contract,
                                  msg=encode_msg(set_price_msg(token_id, price)),
                                  funds=[])

    async def submit(self, token_id: int, price: str) -> TxResult:
        payload = set_price_msg(token_id, price)
        msg     = self.build(token_id, price)

        self.log.info("[%s] Updating price for token %d",
                      datetime.now(timezone.utc).isoformat(), token_id)
        self.log.info("Price: %s USD", price)
        self.log.debug("Message: %s", json.dumps({
            "typeUrl": "/cosmwasm.wasm.v1.MsgExecuteContract",
            "value": {"sender": msg.sender, "contract": msg.contract,
                      "msg": b64_msg(payload), "funds": []}}, indent=2))

        try:
            res = await asyncio.to_thread(self.client.sign_and_broadcast, msg)
        except Exception as e:
            self._count("fail")
            self.log.error("Failed to update price: %s", e)
            raise BroadcastError(f"set_price token {token_id} failed: {e}", token_id) from e

        self._count("ok")
        self.log.info("Price update successful")
        self.log.info("Transaction Hash: %s", res.tx_hash)
        self.log.info("- Gas Used: %d", res.gas_used)
        self.log.info("- Gas Wanted: %d", res.gas_wanted)
        self.log.info("- Height: %d", res.height)
        return res

    def _count(self, status: str):
        if self.counter is not None:
            self.counter.labels(status=status).inc()
