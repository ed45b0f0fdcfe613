"""NAME
    bytecode

DESCRIPTION
    Built-in EVM programs for deployless multicall, produced by a
    tiny label-resolving assembler.

    aggregate3_creation_code()
        Creation code of a contract answering
        aggregate3((address,bool,bytes)[]) with (bool,bytes)[],
        same encoding as Multicall3. Calls never forward value.

    deployless_call_wrapper()
        Constructor-only program taking `(bytes code, bytes data)`
        appended to it: creates `code`, calls it with `data` and
        returns (or reverts with) the call's output.

    The constructor output becomes the eth_call result, so the node's
    24576 byte contract size limit caps what one deployless chunk can
    return.

"""

from typing import Iterable, List, NamedTuple, Optional, Union

OPCODES = {
    'STOP': 0x00, 'ADD': 0x01, 'MUL': 0x02, 'SUB': 0x03, 'DIV': 0x04,
    'LT': 0x10, 'GT': 0x11, 'EQ': 0x14, 'ISZERO': 0x15, 'AND': 0x16, 'OR': 0x17, 'NOT': 0x19,
    'CALLDATALOAD': 0x35, 'CALLDATASIZE': 0x36, 'CALLDATACOPY': 0x37, 'CODESIZE': 0x38, 'CODECOPY': 0x39,
    'RETURNDATASIZE': 0x3d, 'RETURNDATACOPY': 0x3e,
    'POP': 0x50, 'MLOAD': 0x51, 'MSTORE': 0x52, 'JUMP': 0x56, 'JUMPI': 0x57, 'GAS': 0x5a, 'JUMPDEST': 0x5b,
    'CREATE': 0xf0, 'CALL': 0xf1, 'RETURN': 0xf3, 'REVERT': 0xfd, 'INVALID': 0xfe,
}
OPCODES.update({f'DUP{n}': 0x7f + n for n in range(1, 17)})
OPCODES.update({f'SWAP{n}': 0x8f + n for n in range(1, 17)})

PUSH1 = 0x60
LABEL_SIZE = 2


class Label(NamedTuple):
    name: str


class Push(NamedTuple):
    value: Union[int, str]
    size: Optional[int] = None

    @property
    def width(self) -> int:
        if self.size is not None:
            return self.size
        if isinstance(self.value, str):
            return LABEL_SIZE
        # PUSH0 is not available before Shanghai
        return max(1, (self.value.bit_length() + 7) // 8)


def _flatten(items: Iterable) -> List:
    flat = []
    for item in items:
        if isinstance(item, list):
            flat.extend(_flatten(item))
        else:
            flat.append(item)
    return flat


def assemble(program: Iterable) -> bytes:
    """Two passes: label offsets first, then bytes. Label pushes are always 2 bytes wide."""
    program = _flatten(program)
    labels = {}
    pc = 0
    for item in program:
        if isinstance(item, Label):
            if item.name in labels:
                raise ValueError(f"duplicate label {item.name!r}")
            labels[item.name] = pc
        elif isinstance(item, Push):
            pc += 1 + item.width
        else:
            pc += 1

    code = bytearray()
    for item in program:
        if isinstance(item, Label):
            continue
        if isinstance(item, Push):
            value = labels[item.value] if isinstance(item.value, str) else item.value
            code.append(PUSH1 - 1 + item.width)
            code += value.to_bytes(item.width, 'big')
        else:
            code.append(OPCODES[item])
    return bytes(code)


def jumpdest(name: str) -> list:
    return [Label(name), 'JUMPDEST']


def load(slot: int) -> list:
    return [Push(slot), 'MLOAD']


def store(slot: int) -> list:
    return [Push(slot), 'MSTORE']


# aggregate3 keeps its variables in memory words below OUT, the response is built from OUT on
A, N, I, TAIL, T, B, LEN, OK = range(0x00, 0x100, 0x20)
OUT = 0x100
CONTENT = OUT + 0x40


def aggregate3_runtime() -> bytes:
    return assemble([
        # A: calldata position of the calls array length
        Push(4), Push(4), 'CALLDATALOAD', 'ADD', store(A),
        load(A), 'CALLDATALOAD', store(N),
        Push(0x20), Push(OUT), 'MSTORE',
        load(N), Push(OUT + 0x20), 'MSTORE',
        Push(0x20), load(N), 'MUL', Push(CONTENT), 'ADD', store(TAIL),
        Push(0), store(I),

        jumpdest('loop'),
        load(N), load(I), 'LT', 'ISZERO', Push('done'), 'JUMPI',
        # T: start of calls[i], B: start of its callData
        Push(0x20), load(I), 'MUL', Push(0x20), 'ADD', load(A), 'ADD', 'CALLDATALOAD',
        Push(0x20), 'ADD', load(A), 'ADD', store(T),
        load(T), Push(0x40), 'ADD', 'CALLDATALOAD', load(T), 'ADD', store(B),
        load(B), 'CALLDATALOAD', store(LEN),
        # callData is staged where the result data will go
        load(LEN), Push(0x20), load(B), 'ADD', Push(0x60), load(TAIL), 'ADD', 'CALLDATACOPY',
        Push(0), Push(0), load(LEN), Push(0x60), load(TAIL), 'ADD', Push(0), load(T), 'CALLDATALOAD', 'GAS', 'CALL',
        store(OK),
        # failed call with allowFailure == false reverts the whole batch
        load(T), Push(0x20), 'ADD', 'CALLDATALOAD', 'ISZERO', load(OK), 'ISZERO', 'AND', 'ISZERO',
        Push('record'), 'JUMPI',
        'RETURNDATASIZE', Push(0), Push(0), 'RETURNDATACOPY',
        'RETURNDATASIZE', Push(0), 'REVERT',

        jumpdest('record'),
        Push(CONTENT), load(TAIL), 'SUB',
        Push(0x20), load(I), 'MUL', Push(CONTENT), 'ADD', 'MSTORE',
        load(OK), load(TAIL), 'MSTORE',
        Push(0x40), Push(0x20), load(TAIL), 'ADD', 'MSTORE',
        'RETURNDATASIZE', Push(0x40), load(TAIL), 'ADD', 'MSTORE',
        'RETURNDATASIZE', Push(0), Push(0x60), load(TAIL), 'ADD', 'RETURNDATACOPY',
        # zero the padding, staged callData may still be there
        Push(0), 'RETURNDATASIZE', Push(0x60), load(TAIL), 'ADD', 'ADD', 'MSTORE',
        Push(0x1f), 'NOT', Push(0x1f), 'RETURNDATASIZE', 'ADD', 'AND', Push(0x60), 'ADD', load(TAIL), 'ADD',
        store(TAIL),
        Push(1), load(I), 'ADD', store(I),
        Push('loop'), 'JUMP',

        jumpdest('done'),
        Push(OUT), load(TAIL), 'SUB', Push(OUT), 'RETURN',
    ])


def creation_code(runtime: bytes) -> bytes:
    return assemble([
        Push(len(runtime), LABEL_SIZE), 'DUP1', Push('runtime'), Push(0), 'CODECOPY', Push(0), 'RETURN',
        Label('runtime'),
    ]) + runtime


def aggregate3_creation_code() -> bytes:
    return creation_code(aggregate3_runtime())


def deployless_call_wrapper() -> bytes:
    return assemble([
        # constructor arguments sit right after this program
        Push('args'), 'CODESIZE', 'SUB', Push('args'), Push(0), 'CODECOPY',
        Push(0), 'MLOAD', 'MLOAD',
        Push(0x20), Push(0), 'MLOAD', 'ADD',
        Push(0), 'CREATE',
        'DUP1', 'ISZERO', Push('failed'), 'JUMPI',
        Push(0), Push(0),
        Push(0x20), 'MLOAD', 'MLOAD',
        Push(0x20), Push(0x20), 'MLOAD', 'ADD',
        Push(0), 'DUP6', 'GAS', 'CALL',
        'RETURNDATASIZE', Push(0), Push(0), 'RETURNDATACOPY',
        Push('success'), 'JUMPI',
        'RETURNDATASIZE', Push(0), 'REVERT',
        jumpdest('success'),
        'RETURNDATASIZE', Push(0), 'RETURN',
        jumpdest('failed'),
        Push(0), Push(0), 'REVERT',
        Label('args'),
    ])
