import asyncio, logging
from typing import Any

from bip_utils import Bip39SeedGenerator, Bip32Secp256k1
from cosmpy.aerial.client import LedgerClient, NetworkConfig
from cosmpy.aerial.tx import SigningCfg, Transaction, TxFee
from cosmpy.aerial.wallet import LocalWallet
from cosmpy.crypto.keypairs import PrivateKey
from cosmpy.protos.cosmwasm.wasm.v1.tx_pb2 import MsgExecuteContract
from mnemonic import Mnemonic

from .errors import SetupError
from .models import ChainCfg, Settings, TxResult

log = logging.getLogger("ChainClient")

def validate_mnemonic(phrase: str | None) -> bool:
    """BIP-39 체크섬 검사만 수행 (네트워크 접근 없음)"""
    if not phrase or not phrase.strip():
        return False
    words = " ".join(phrase.split())
    try:
        return Mnemonic("english").check(words)
    except (ValueError, LookupError):
        return False

def derive_wallet(phrase: str, chain: ChainCfg) -> LocalWallet:
    if not validate_mnemonic(phrase):
        raise SetupError("invalid mnemonic")
    try:
        seed = Bip39SeedGenerator(" ".join(phrase.split())).Generate()
        node = Bip32Secp256k1.FromSeedAndPath(seed, chain.hd_path)
        key  = PrivateKey(node.PrivateKey().Raw().ToBytes())
        return LocalWallet(key, prefix=chain.prefix)
    except Exception as e:
        raise SetupError(f"no account derivable at {chain.hd_path}: {e}") from e


class ChainClient:
    """
    지갑(서명 키) + LedgerClient 묶음.
    프로세스 시작 시 1회 생성 후 모든 cycle 에서 재사용한다.
    """
    def __init__(self, wallet: LocalWallet, ledger: Any, chain: ChainCfg):
        self.wallet  = wallet
        self.ledger  = ledger
        self.chain   = chain
        self.address = str(wallet.address())

    @classmethod
    async def connect(cls, settings: Settings) -> "ChainClient":
        chain = settings.chain
        log.info("Setting up client...")
        wallet = derive_wallet(settings.mnemonic.get_secret_value(), chain)
        log.info("Wallet created successfully")
        log.info("Connected with address: %s", wallet.address())
        log.info("Account type: secp256k1")

        net = NetworkConfig(
            chain_id=chain.chain_id,
            url=settings.rpc_url,
            fee_minimum_gas_price=chain.gas_price,
            fee_denomination=chain.denom,
            staking_denomination=chain.denom,
        )

        def _open():
            ledger = LedgerClient(net)
            height = ledger.query_height()       # ping
            return ledger, height

        try:
            ledger, height = await asyncio.to_thread(_open)
        except Exception as e:
            log.error("Failed to setup client: %s", e, exc_info=True)
            raise SetupError(f"cannot reach node {settings.rpc_url}: {e}") from e

        log.info("Client connected successfully (%s height=%s)", chain.chain_id, height)
        return cls(wallet, ledger, chain)

    def sign_and_broadcast(self, msg: MsgExecuteContract) -> TxResult:
        """
        고정 fee / gas_limit 으로 서명 후 전송, 블록 포함까지 대기 (blocking).
        gas 시뮬레이션은 하지 않는다.
        """
        account = self.ledger.query_account(self.wallet.address())
        tx = Transaction()
        tx.add_message(msg)
        fee = TxFee(amount=self.chain.fee, gas_limit=self.chain.gas_limit)
        tx.seal(SigningCfg.direct(self.wallet.public_key(), account.sequence), fee=fee)
        tx.sign(self.wallet.signer(), self.chain.chain_id, account.number)
        tx.complete()

        submitted = self.ledger.broadcast_tx(tx)
        submitted.wait_to_complete()             # 실패 시 cosmpy BroadcastError
        resp = submitted.response
        return TxResult(tx_hash=submitted.tx_hash,
                        gas_used=resp.gas_used,
                        gas_wanted=resp.gas_wanted,
                        height=resp.height)
