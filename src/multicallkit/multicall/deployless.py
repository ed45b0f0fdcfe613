"""NAME
    deployless

DESCRIPTION
    Calldata for running contract bytecode through eth_call without
    the contract being deployed. The wrapper is a constructor-only
    contract taking `(bytes code, bytes data)`: it creates `code`,
    calls it with `data` and returns the call's output from the
    constructor. The transaction is sent with no `to` field.

"""

from typing import Optional, Union

from eth_abi import encode
from eth_utils import to_bytes

from ..errors import DeploylessNotConfiguredError


def _to_bytes(value: Union[bytes, str, None]) -> Optional[bytes]:
    if value is None or isinstance(value, bytes):
        return value
    return to_bytes(hexstr=value)


class DeploylessEncoder:
    """
    NAME
        DeploylessEncoder

    ATTRIBUTES
        wrapper_bytecode: bytes
            Creation code of the deployless-call-via-bytecode wrapper.

    """

    def __init__(self, wrapper_bytecode: Union[bytes, str]):
        wrapper_bytecode = _to_bytes(wrapper_bytecode)
        if not wrapper_bytecode:
            raise DeploylessNotConfiguredError('deployless call wrapper bytecode')
        self.wrapper_bytecode = wrapper_bytecode

    def wrap_bytecode_call(self, code: bytes, data: bytes) -> bytes:
        return self.wrapper_bytecode + encode(['bytes', 'bytes'], [code, data])
