import os
from typing import Optional

from eth_utils import is_hex, to_bytes
from pydantic import BaseModel, ConfigDict, Field, field_validator
from web3 import Web3

from .multicall.constants import DEFAULT_BATCH_SIZE, DEFAULT_MAX_CONCURRENT_CHUNKS


def _env_optional(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


def _env_float(name: str) -> Optional[float]:
    value = _env_optional(name)
    return float(value) if value is not None else None


class MulticallSettings(BaseModel):
    # values read from the environment go through the validators too
    model_config = ConfigDict(validate_default=True)

    batch_size: int = Field(default_factory=lambda: int(os.getenv("MULTICALL_BATCH_SIZE", str(DEFAULT_BATCH_SIZE))))
    max_concurrent_chunks: int = Field(
        default_factory=lambda: int(os.getenv("MULTICALL_MAX_CONCURRENT_CHUNKS", str(DEFAULT_MAX_CONCURRENT_CHUNKS))))
    deployless: bool = Field(default_factory=lambda: os.getenv("MULTICALL_DEPLOYLESS", "false").lower() != "false")
    multicall_address: Optional[str] = Field(default_factory=lambda: _env_optional("MULTICALL_ADDRESS"))
    multicall_bytecode: Optional[str] = Field(default_factory=lambda: _env_optional("MULTICALL_BYTECODE"))
    deployless_bytecode: Optional[str] = Field(default_factory=lambda: _env_optional("DEPLOYLESS_CALL_BYTECODE"))
    timeout: Optional[float] = Field(default_factory=lambda: _env_float("MULTICALL_TIMEOUT"))

    @field_validator("multicall_address")
    @classmethod
    def checksum_address(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return Web3.to_checksum_address(value)

    @field_validator("multicall_bytecode", "deployless_bytecode")
    @classmethod
    def normalize_bytecode(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if not is_hex(value):
            raise ValueError("bytecode must be a hex string")
        return value if value.startswith("0x") else "0x" + value

    @field_validator("timeout")
    @classmethod
    def positive_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("timeout must be positive")
        return value

    @property
    def multicall_code(self) -> Optional[bytes]:
        return to_bytes(hexstr=self.multicall_bytecode) if self.multicall_bytecode else None


def load_settings(**overrides) -> MulticallSettings:
    from dotenv import load_dotenv
    load_dotenv()
    return MulticallSettings(**overrides)
