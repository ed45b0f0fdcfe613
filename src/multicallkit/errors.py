from typing import Optional

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, Web3Exception

from .multicall.constants import ERROR_STRING_SELECTOR, PANIC_SELECTOR


class MulticallError(Web3Exception):
    """Base class for everything raised by multicallkit."""


class ChainNotConfiguredError(MulticallError):
    def __init__(self):
        super().__init__("chain not configured on client")


class ChainDoesNotSupportContractError(MulticallError):
    def __init__(self, chain_id: int, contract_name: str = 'multicall3', block_number: Optional[int] = None):
        if block_number is not None:
            message = f"chain {chain_id} does not support {contract_name} at block {block_number}"
        else:
            message = f"chain {chain_id} does not support {contract_name}"
        super().__init__(message)
        self.chain_id = chain_id
        self.contract_name = contract_name
        self.block_number = block_number


class DeploylessNotConfiguredError(MulticallError):
    def __init__(self, missing: str):
        super().__init__(f"deployless multicall requires {missing} to be configured")
        self.missing = missing


class CallEncodingError(MulticallError):
    """A single call could not be turned into calldata."""


class ChunkExecutionError(MulticallError):
    """The eth_call carrying a whole chunk failed. Applies to every call of the chunk."""

    def __init__(self, message: str, chunk_index: Optional[int] = None, size: Optional[int] = None):
        super().__init__(message)
        self.chunk_index = chunk_index
        self.size = size


class ChunkTimeoutError(ChunkExecutionError):
    pass


class AggregateDecodingError(ChunkExecutionError):
    pass


class ResultsMismatchError(MulticallError):
    def __init__(self, got: int, expected: int):
        super().__init__(f"multicall results mismatch: got {got}, expected {expected}")
        self.got = got
        self.expected = expected


class RawContractError(ContractLogicError, MulticallError):
    """
    The aggregator reported `success = false` for a call.

    `revert_data` holds the raw revert bytes, `reason` the decoded
    Error(string) message or Panic code when the data has one of those shapes.
    """

    def __init__(self, revert_data: bytes):
        self.revert_data = bytes(revert_data)
        self.reason = decode_revert_reason(self.revert_data)
        if self.reason:
            message = f"contract reverted: {self.reason}"
        elif self.revert_data:
            message = f"contract reverted with data: 0x{self.revert_data.hex()}"
        else:
            message = "contract reverted"
        super().__init__(message, data='0x' + self.revert_data.hex())


class ZeroDataError(BadFunctionCallOutput, MulticallError):
    def __init__(self, fn_name: Optional[str] = None):
        message = "cannot decode zero data (0x) - the function may have reverted"
        if fn_name:
            message = f"{message}: {fn_name!r}"
        super().__init__(message)
        self.fn_name = fn_name


class CallDecodingError(BadFunctionCallOutput, MulticallError):
    pass


def decode_revert_reason(data: bytes) -> Optional[str]:
    if data[:4] == ERROR_STRING_SELECTOR:
        try:
            return decode(['string'], data[4:])[0]
        except DecodingError:
            return None
    if data[:4] == PANIC_SELECTOR:
        try:
            return f"Panic(0x{decode(['uint256'], data[4:])[0]:02x})"
        except DecodingError:
            return None
    return None
