"""NAME
    Multicall

DESCRIPTION
    A multicall for use with pure Web3 library.
    Calls are packed into calldata-bounded chunks, every chunk is
    one `aggregate3` eth_call against the Multicall3 contract of the
    chain (or a deployless execution of its bytecode), and chunks
    run in parallel on a bounded thread pool.

"""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import List, Optional, Sequence, Union

from web3 import Web3
from web3.contract.contract import ContractFunction
from web3.types import BlockIdentifier

from .aggregate import Aggregate3Result, Call3
from .base import BaseMulticall, Call, CallResult, ChunkResult
from .constants import ChainRegistry, resolve_chain_id
from .deployless import DeploylessEncoder
from ..config import MulticallSettings
from ..errors import ChunkExecutionError, ChunkTimeoutError
from ..transport import Transport, Web3Transport

log = logging.getLogger("multicallkit.multicall")


class Multicall(BaseMulticall):
    """
    NAME
        Multicall

    DESCRIPTION
       The main multicall class.

    ATTRIBUTES
        w3: Web3 class instance

        custom_address: str
            An address of custom multicall smart contract.
            If specified, the chain's registered Multicall3 will be omitted.

        custom_chain_name: str
            A custom name for provider chain.
            Use for loading Multicall3 smart contract address from default dictionary.

        chain_id: int
            Chain id, skips asking the node for it.

        transport: Transport
            Anything with `call(transaction, block_identifier)` and `chain_id()`.
            Defaults to a Web3Transport around `w3`.

        settings: MulticallSettings
            Defaults for batch size, concurrency, deployless mode and timeout.

        registry: ChainRegistry
            Aggregator contract per chain.

        deployless_encoder: DeploylessEncoder
            Used when a call runs without a deployed aggregator.

    """

    def __init__(
            self,
            w3: Web3 = None,
            custom_address: str = None,
            custom_chain_name: str = None,
            chain_id: int = None,
            transport: Transport = None,
            settings: MulticallSettings = None,
            registry: ChainRegistry = None,
            deployless_encoder: DeploylessEncoder = None,
    ):
        if not w3 and not transport:
            raise TypeError("__init__() missing 1 required argument: 'w3' or 'transport' (at least one required)")
        self.transport = transport or Web3Transport(w3)
        if chain_id is None and custom_chain_name:
            chain_id = resolve_chain_id(custom_chain_name)
        self._configure(chain_id, custom_address, settings, registry, deployless_encoder)
        if self.chain_id is None and not self.custom_address:
            self.chain_id = self.transport.chain_id()

    def execute_chunk(
            self,
            chunk: Sequence[Call3],
            multicall_address: Optional[str],
            deployless: bool = False,
            block_identifier: BlockIdentifier = 'latest',
            index: int = 0,
    ) -> List[Aggregate3Result]:
        """
        Sends one chunk as a single aggregate3 eth_call.

        Raises ChunkExecutionError if the request fails or the response
        can not be decoded. Never retries.
        """
        transaction = self._build_transaction(chunk, multicall_address, deployless, index)
        try:
            raw = self.transport.call(transaction, block_identifier)
        except Exception as e:
            raise ChunkExecutionError(f"eth_call failed: {e}", index, len(chunk)) from e
        return self._decode_chunk(raw, chunk, index)

    def _settle_chunk(self, index, chunk, multicall_address, deployless, block_identifier) -> ChunkResult:
        try:
            return ChunkResult(self.execute_chunk(chunk, multicall_address, deployless, block_identifier, index))
        except ChunkExecutionError as e:
            log.warning(f"chunk {index} ({len(chunk)} calls) failed: {e}")
            return ChunkResult(error=e)

    def call(
            self,
            calls: Sequence[Union[Call, ContractFunction]],
            allow_failure: bool = True,
            batch_size: Optional[int] = None,
            deployless: Optional[bool] = None,
            multicall_address: Optional[str] = None,
            block_identifier: BlockIdentifier = 'latest',
            max_concurrent_chunks: Optional[int] = None,
            timeout: Optional[float] = None,
    ) -> List[CallResult]:
        """
        Executes multicall for specified list of smart contracts functions.

        Parameters:
            calls: list
                list of Call or ContractFunction objects

            allow_failure: bool
                if true, failed calls come back as failure results,
                otherwise the first failure (in call order) is raised.

            batch_size: int
                calldata byte budget of one chunk, <= 0 sends everything at once

            deployless: bool
                run the aggregator bytecode without a deployed contract

            multicall_address: str
                aggregator address for this call only

            block_identifier: BlockIdentifier
                block identifier for web3 call

            max_concurrent_chunks: int
                chunks in flight at once, <= 0 for no limit

            timeout: float
                seconds all chunks together may take

        Returns:
            list of CallResult, one per call and in the same order
        """
        batch_size, deployless, max_concurrent_chunks, timeout = self._options(
            batch_size, deployless, max_concurrent_chunks, timeout)
        address = self.resolve_address(multicall_address, deployless, block_identifier)
        deployless = deployless or address is None

        calls = self._prepare(calls)
        if not calls:
            return []
        chunks = self._plan(calls, batch_size)

        workers = max_concurrent_chunks if max_concurrent_chunks > 0 else len(chunks)
        outcomes: List[Optional[ChunkResult]] = [None] * len(chunks)
        pool = ThreadPoolExecutor(max_workers=min(workers, len(chunks)), thread_name_prefix="multicall")
        not_done = set()
        try:
            futures = {
                pool.submit(self._settle_chunk, i, chunk, address, deployless, block_identifier): i
                for i, chunk in enumerate(chunks)
            }
            done, not_done = wait(futures, timeout=timeout)
            for future in done:
                outcomes[futures[future]] = future.result()
            for future in not_done:
                future.cancel()
                i = futures[future]
                log.warning(f"chunk {i} ({len(chunks[i])} calls) timed out after {timeout}s")
                outcomes[i] = ChunkResult(error=ChunkTimeoutError(
                    f"multicall timed out after {timeout}s", i, len(chunks[i])))
        finally:
            pool.shutdown(wait=not not_done, cancel_futures=True)

        return self._reassemble(calls, chunks, outcomes, allow_failure)
