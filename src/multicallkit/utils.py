import json
from typing import Any, List, Optional, Sequence, TypeVar

T = TypeVar('T')


def call_cost(call_data: bytes) -> int:
    # empty calldata still travels as "0x"
    return max(len(call_data), 2)


def plan_chunks(calls: Sequence[T], batch_size: Optional[int]) -> List[List[T]]:
    """
    Greedy, order preserving packing of calls into chunks.

    A chunk is closed as soon as the next call would push its calldata total
    over `batch_size`. A single call larger than the budget still gets a chunk
    of its own. `batch_size` of None or <= 0 disables chunking.
    """
    if not calls:
        return []
    if not batch_size or batch_size <= 0:
        return [list(calls)]

    chunks = []
    current = []
    current_size = 0
    for call in calls:
        size = call_cost(call.call_data)
        if current and current_size + size > batch_size:
            chunks.append(current)
            current = []
            current_size = 0
        current.append(call)
        current_size += size
    chunks.append(current)
    return chunks


def get_type(schema: dict) -> str:
    if schema['type'].startswith('tuple'):
        postfix = schema['type'][len('tuple'):]
        return '(' + ','.join(get_type(x) for x in schema.get('components', [])) + ')' + postfix
    return schema['type']


def parse_abi(abi: Any) -> List[dict]:
    if hasattr(abi, 'abi'):
        abi = abi.abi
    if isinstance(abi, (bytes, bytearray)):
        abi = abi.decode()
    if isinstance(abi, str):
        abi = json.loads(abi)
    if isinstance(abi, dict):
        abi = [abi]
    if not isinstance(abi, (list, tuple)):
        raise TypeError(f"ABI must be a JSON string, bytes, list or contract, got {type(abi).__name__}")
    return list(abi)
