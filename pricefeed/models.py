from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pathlib   import Path
from typing    import Optional, Mapping
import os, yaml

from dotenv import dotenv_values

# 컨트랙트에 등록된 token_id (고정값 – 바꾸지 말 것)
TOKEN_IDS: dict[str, int] = {
    "ubtc":  1,
    "ueth":  2,
    "uatom": 3,
    "uusdc": 4,
    "uusdt": 5,
}

DEFAULT_RPC = "grpc+https://grpc.testnet-1.nibiru.fi:443"

class ChainCfg(BaseModel):
    model_config = ConfigDict(frozen=True)

    chain_id:       str   = "nibiru-testnet-1"
    prefix:         str   = "nibi"
    denom:          str   = "unibi"
    hd_path:        str   = "m/44'/118'/0'/0/0"
    gas_price:      float = Field(0.025, gt=0)
    fee_amount:     int   = Field(750_000, gt=0)
    gas_limit:      int   = Field(1_000_000, gt=0)

    @property
    def fee(self) -> str:
        return f"{self.fee_amount}{self.denom}"

class RatesCfg(BaseModel):
    model_config = ConfigDict(frozen=True)

    command: tuple[str, ...] = ("nibid", "q", "oracle", "exchange-rates", "-o", "json")

    @field_validator("command")
    @classmethod
    def _not_empty(cls, v):
        if not v:
            raise ValueError("rates.command must not be empty")
        return v

class RuntimeCfg(BaseModel):
    model_config = ConfigDict(frozen=True)

    interval_ms:   int  = Field(3_600_000, gt=0)
    allow_overlap: bool = True
    log_level:     str  = "INFO"
    metrics_port:  Optional[int] = None      # None → prometheus 비활성

    @property
    def interval_sec(self) -> float:
        return self.interval_ms / 1000

class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    mnemonic:         SecretStr
    rpc_url:          str = DEFAULT_RPC
    contract_address: str
    chain:   ChainCfg   = ChainCfg()
    rates:   RatesCfg   = RatesCfg()
    runtime: RuntimeCfg = RuntimeCfg()

    @field_validator("contract_address")
    @classmethod
    def _contract_set(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("ORACLE_CONTRACT_ADDRESS is empty")
        return v.strip()

class TxResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    tx_hash:    str
    gas_used:   int
    gas_wanted: int
    height:     int

def _environ() -> dict[str, str]:
    env = {k: v for k, v in dotenv_values(".env").items() if v is not None}
    env.update(os.environ)                 # 실제 환경변수가 .env 보다 우선
    return env

def load_config(path: str | Path = "config.yaml",
                env: Optional[Mapping[str, str]] = None) -> Settings:
    p   = Path(path)
    raw = (yaml.safe_load(p.read_text()) or {}) if p.exists() else {}
    env = _environ() if env is None else env

    if "NIBIRU_MNEMONIC" in env:
        raw["mnemonic"] = env["NIBIRU_MNEMONIC"]
    if "NIBIRU_RPC" in env:
        raw["rpc_url"] = env["NIBIRU_RPC"]
    if "ORACLE_CONTRACT_ADDRESS" in env:
        raw["contract_address"] = env["ORACLE_CONTRACT_ADDRESS"]
    if "UPDATE_INTERVAL" in env:
        raw.setdefault("runtime", {})
        raw["runtime"]["interval_ms"] = int(env["UPDATE_INTERVAL"])
    return Settings(**raw)
