import logging
from typing import Any, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

from eth_abi import decode, encode
from eth_abi.abi import default_codec
from eth_abi.exceptions import DecodingError, EncodingError
from eth_utils import function_abi_to_4byte_selector, get_aligned_abi_inputs, get_normalized_abi_inputs, is_hex
from web3 import Web3
from web3._utils.abi import map_abi_data  # noqa
from web3._utils.normalizers import BASE_RETURN_NORMALIZERS  # noqa
from web3.constants import ADDRESS_ZERO
from web3.contract.base_contract import BaseContractFunction
from web3.exceptions import Web3Exception
from web3.types import BlockIdentifier, TxParams
from web3.utils import get_abi_element

from .aggregate import Aggregate3Result, Call3, decode_aggregate3_result, encode_aggregate3
from .constants import DEFAULT_REGISTRY, DEPLOYLESS_CALL_BYTECODE, MULTICALL_BYTECODE, ChainRegistry
from .deployless import DeploylessEncoder
from ..config import MulticallSettings
from ..errors import (AggregateDecodingError, CallDecodingError, CallEncodingError, ChainDoesNotSupportContractError,
                      ChainNotConfiguredError, ChunkExecutionError, MulticallError, RawContractError,
                      ResultsMismatchError, ZeroDataError)
from ..utils import get_type, parse_abi, plan_chunks

log = logging.getLogger("multicallkit.multicall")

SUCCESS = 'success'
FAILURE = 'failure'


def _block_number(block_identifier: BlockIdentifier) -> Optional[int]:
    if isinstance(block_identifier, int) and not isinstance(block_identifier, bool):
        return block_identifier
    # hex quantities only, 32-byte block hashes and tags are left alone
    if isinstance(block_identifier, str) and block_identifier.startswith("0x") \
            and len(block_identifier) < 66 and is_hex(block_identifier):
        return int(block_identifier, 16)
    return None


class Call:
    """
    NAME
        Call

    DESCRIPTION
        One contract function call. Encoding happens on construction and
        never raises: any problem is kept in `error` and the call carries
        empty calldata so it still takes its place in the batch.

    ATTRIBUTES
        target: str
            Checksummed address of the called contract
            (zero address if the given one is invalid).

        abi: ABI | str | bytes | Contract
            Contract ABI the function is looked up in.

        fn_name: str
            The name of a contract function to be called.

        args: list
            A list of arguments to be passed to a called contract function.

        kwargs: dict
            keyword arguments to be passed to a called contract function.

    """

    def __init__(
            self,
            target: str,
            abi: Any,
            fn_name: str,
            args: Optional[Union[list, tuple]] = None,
            kwargs: Optional[dict] = None,
    ):
        if args is None:
            args = []
        if kwargs is None:
            kwargs = {}
        if not isinstance(args, (list, tuple)):
            args = [args]
        self.address = target
        self.fn_name = fn_name
        self.args = tuple(args)
        self.kwargs = dict(kwargs)
        self.target = ADDRESS_ZERO
        self.abi = None
        self.call_data = b''
        self.error = None
        try:
            self.target = Web3.to_checksum_address(target)
        except (ValueError, TypeError) as e:
            self.error = CallEncodingError(f"invalid target address {target!r}: {e}")
            self.error.__cause__ = e
            return
        try:
            self.abi, self.call_data = self._encode(abi)
        except CallEncodingError as e:
            self.error = e

    @classmethod
    def from_function(cls, function: BaseContractFunction) -> 'Call':
        return cls(function.address, [function.abi], function.abi['name'], function.args, function.kwargs)

    def _encode(self, abi: Any) -> Tuple[dict, bytes]:
        try:
            functions = [item for item in parse_abi(abi) if item.get('type', 'function') == 'function']
        except (ValueError, TypeError, AttributeError) as e:
            raise CallEncodingError(f"failed to parse ABI for {self.fn_name!r}: {e}") from e
        try:
            function_abi = get_abi_element(functions, self.fn_name, *self.args, abi_codec=default_codec,
                                           **self.kwargs)
            fn_inputs = get_normalized_abi_inputs(function_abi, *self.args, **self.kwargs)
            types, aligned_inputs = get_aligned_abi_inputs(function_abi, fn_inputs)
            call_data = function_abi_to_4byte_selector(function_abi) + encode(types, aligned_inputs)
        except (ValueError, TypeError, KeyError, Web3Exception, EncodingError) as e:
            raise CallEncodingError(f"failed to encode call for {self.fn_name!r}: {e}") from e
        return function_abi, call_data

    def to_call3(self) -> Call3:
        return Call3(self.target, True, self.call_data)

    def decode_output(self, data: bytes) -> Any:
        out_types = [get_type(schema) for schema in self.abi.get('outputs', [])]
        try:
            decoded = decode(out_types, data)
            decoded = tuple(map_abi_data(BASE_RETURN_NORMALIZERS, out_types, decoded))
        except (DecodingError, UnicodeDecodeError, ValueError) as e:
            raise CallDecodingError(f"failed to decode result for {self.fn_name!r}: {e}") from e
        if len(out_types) == 1:
            return decoded[0]
        return decoded

    def __repr__(self):
        return f"Call({self.address!r}, {self.fn_name!r}, args={list(self.args)!r})"


class CallResult(NamedTuple):
    status: str
    result: Any = None
    error: Optional[Exception] = None

    @classmethod
    def success(cls, value: Any) -> 'CallResult':
        return cls(SUCCESS, value, None)

    @classmethod
    def failure(cls, error: Exception) -> 'CallResult':
        return cls(FAILURE, None, error)

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.result


class ChunkResult(NamedTuple):
    results: Optional[List[Aggregate3Result]] = None
    error: Optional[ChunkExecutionError] = None


class BaseMulticall:
    """Everything that does not depend on how chunks are scheduled."""

    def _configure(
            self,
            chain_id: Optional[int],
            custom_address: Optional[str],
            settings: Optional[MulticallSettings],
            registry: Optional[ChainRegistry],
            deployless_encoder: Optional[DeploylessEncoder],
    ):
        self.settings = settings or MulticallSettings()
        self.registry = registry or DEFAULT_REGISTRY
        self.chain_id = chain_id
        custom_address = custom_address or self.settings.multicall_address
        self.custom_address = Web3.to_checksum_address(custom_address) if custom_address else None
        if deployless_encoder is None:
            deployless_encoder = DeploylessEncoder(self.settings.deployless_bytecode or DEPLOYLESS_CALL_BYTECODE)
        self.deployless_encoder = deployless_encoder
        self.multicall_code = self.settings.multicall_code or MULTICALL_BYTECODE

    def resolve_address(self, multicall_address: Optional[str] = None, deployless: bool = False,
                        block_identifier: BlockIdentifier = 'latest') -> Optional[str]:
        """
        Address the aggregate3 call is sent to, or None for a deployless call.

        Raises ChainNotConfiguredError / ChainDoesNotSupportContractError when
        no aggregator can be used and deployless execution was not asked for.
        """
        address = multicall_address or self.custom_address
        if address:
            return Web3.to_checksum_address(address)
        if deployless:
            return None
        if self.chain_id is None:
            raise ChainNotConfiguredError()
        contract = self.registry.get(self.chain_id)
        if contract is None:
            raise ChainDoesNotSupportContractError(self.chain_id)
        block_number = _block_number(block_identifier)
        if block_number is not None and contract.block_created is not None \
                and block_number < contract.block_created:
            raise ChainDoesNotSupportContractError(self.chain_id, block_number=block_number)
        return contract.address

    @staticmethod
    def _prepare(calls: Iterable[Union[Call, BaseContractFunction]]) -> List[Call]:
        prepared = []
        for call in calls:
            if isinstance(call, Call):
                prepared.append(call)
            elif isinstance(call, BaseContractFunction):
                prepared.append(Call.from_function(call))
            else:
                raise TypeError(f"calls must be Call or ContractFunction objects, got {type(call).__name__}")
        for i, call in enumerate(prepared):
            if call.error is not None:
                log.debug(f"call {i} ({call.fn_name}) failed to encode: {call.error}")
        return prepared

    def _plan(self, calls: Sequence[Call], batch_size: Optional[int]) -> List[List[Call3]]:
        chunks = plan_chunks([call.to_call3() for call in calls], batch_size)
        log.debug(f"planned {len(chunks)} chunk(s) for {len(calls)} call(s), batch_size={batch_size}")
        return chunks

    def _build_transaction(self, chunk: Sequence[Call3], multicall_address: Optional[str],
                           deployless: bool, index: int) -> TxParams:
        try:
            calldata = encode_aggregate3(chunk)
        except EncodingError as e:
            raise ChunkExecutionError(f"failed to encode aggregate3: {e}", index, len(chunk)) from e
        if deployless or multicall_address is None:
            data = self.deployless_encoder.wrap_bytecode_call(self.multicall_code, calldata)
            return {'data': Web3.to_hex(data)}
        return {'to': multicall_address, 'data': Web3.to_hex(calldata)}

    @staticmethod
    def _decode_chunk(raw: bytes, chunk: Sequence[Call3], index: int) -> List[Aggregate3Result]:
        try:
            results = decode_aggregate3_result(raw)
        except AggregateDecodingError as e:
            e.chunk_index, e.size = index, len(chunk)
            raise
        if len(results) != len(chunk):
            raise AggregateDecodingError(
                f"aggregate3 returned {len(results)} results for {len(chunk)} calls", index, len(chunk))
        return results

    @staticmethod
    def _settle_call(call: Call, aggregate: Aggregate3Result, allow_failure: bool) -> CallResult:
        try:
            if call.error is not None:
                raise call.error
            if not aggregate.success:
                raise RawContractError(aggregate.return_data)
            if not aggregate.return_data:
                raise ZeroDataError(call.fn_name)
            return CallResult.success(call.decode_output(aggregate.return_data))
        except MulticallError as e:
            if not allow_failure:
                raise
            return CallResult.failure(e)

    def _reassemble(self, calls: Sequence[Call], chunks: Sequence[Sequence[Call3]],
                    outcomes: Sequence[ChunkResult], allow_failure: bool) -> List[CallResult]:
        results = []
        for chunk, outcome in zip(chunks, outcomes):
            if outcome.error is not None:
                if not allow_failure:
                    raise outcome.error
                results.extend(CallResult.failure(outcome.error) for _ in chunk)
                continue
            for aggregate in outcome.results:
                results.append(self._settle_call(calls[len(results)], aggregate, allow_failure))
        if len(results) != len(calls):
            raise ResultsMismatchError(len(results), len(calls))
        return results

    def _options(self, batch_size, deployless, max_concurrent_chunks, timeout):
        return (
            self.settings.batch_size if batch_size is None else batch_size,
            self.settings.deployless if deployless is None else deployless,
            self.settings.max_concurrent_chunks if max_concurrent_chunks is None else max_concurrent_chunks,
            self.settings.timeout if timeout is None else timeout,
        )
