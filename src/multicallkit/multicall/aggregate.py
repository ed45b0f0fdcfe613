from typing import List, NamedTuple, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError

from .constants import AGGREGATE3_INPUT_TYPES, AGGREGATE3_OUTPUT_TYPES, AGGREGATE3_SELECTOR
from ..errors import AggregateDecodingError


class Call3(NamedTuple):
    target: str
    allow_failure: bool
    call_data: bytes


class Aggregate3Result(NamedTuple):
    success: bool
    return_data: bytes


def encode_aggregate3(calls: Sequence[Call3]) -> bytes:
    """aggregate3((address target, bool allowFailure, bytes callData)[] calls)"""
    values = [[(call.target, call.allow_failure, call.call_data) for call in calls]]
    return AGGREGATE3_SELECTOR + encode(AGGREGATE3_INPUT_TYPES, values)


def decode_aggregate3_result(data: bytes) -> List[Aggregate3Result]:
    """returns (bool success, bytes returnData)[]"""
    if not data:
        raise AggregateDecodingError("empty aggregate3 result")
    try:
        results, = decode(AGGREGATE3_OUTPUT_TYPES, data)
    except DecodingError as e:
        raise AggregateDecodingError(f"failed to decode aggregate3 result: {e}") from e
    return [Aggregate3Result(success, return_data) for success, return_data in results]
