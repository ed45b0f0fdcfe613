"""NAME
    AsyncMulticall

DESCRIPTION
    A multicall for use with pure Web3 library.
    Same chunking and failure handling as Multicall, chunks run as
    asyncio tasks gated by a semaphore.

"""

import asyncio
import logging
from contextlib import nullcontext
from typing import List, Optional, Sequence, Union

from web3 import AsyncWeb3
from web3.contract.async_contract import AsyncContractFunction
from web3.types import BlockIdentifier

from .aggregate import Aggregate3Result, Call3
from .base import BaseMulticall, Call, CallResult, ChunkResult
from .constants import ChainRegistry, resolve_chain_id
from .deployless import DeploylessEncoder
from ..config import MulticallSettings
from ..errors import ChunkExecutionError, ChunkTimeoutError
from ..transport import AsyncTransport, AsyncWeb3Transport

log = logging.getLogger("multicallkit.async_multicall")


class AsyncMulticall(BaseMulticall):
    """
    NAME
        AsyncMulticall

    DESCRIPTION
       The main multicall class, asyncio flavour.
       Create it, then `await setup(...)` before calling.

    ATTRIBUTES
        transport: AsyncTransport

        chain_id: int

        settings: MulticallSettings

    """

    def __init__(self):
        self.transport = None
        self.chain_id = None

    async def setup(
            self,
            w3: AsyncWeb3 = None,
            custom_address: str = None,
            custom_chain_name: str = None,
            chain_id: int = None,
            transport: AsyncTransport = None,
            settings: MulticallSettings = None,
            registry: ChainRegistry = None,
            deployless_encoder: DeploylessEncoder = None,
    ):
        if not w3 and not transport:
            raise TypeError("setup() missing 1 required argument: 'w3' or 'transport' (at least one required)")
        self.transport = transport or AsyncWeb3Transport(w3)
        if chain_id is None and custom_chain_name:
            chain_id = resolve_chain_id(custom_chain_name)
        self._configure(chain_id, custom_address, settings, registry, deployless_encoder)
        if self.chain_id is None and not self.custom_address:
            self.chain_id = await self.transport.chain_id()

    async def execute_chunk(
            self,
            chunk: Sequence[Call3],
            multicall_address: Optional[str],
            deployless: bool = False,
            block_identifier: BlockIdentifier = 'latest',
            index: int = 0,
    ) -> List[Aggregate3Result]:
        transaction = self._build_transaction(chunk, multicall_address, deployless, index)
        try:
            raw = await self.transport.call(transaction, block_identifier)
        except Exception as e:
            raise ChunkExecutionError(f"eth_call failed: {e}", index, len(chunk)) from e
        return self._decode_chunk(raw, chunk, index)

    async def _bounded_chunk(self, semaphore, index, chunk, multicall_address, deployless, block_identifier):
        async with semaphore or nullcontext():
            return await self.execute_chunk(chunk, multicall_address, deployless, block_identifier, index)

    async def call(
            self,
            calls: Sequence[Union[Call, AsyncContractFunction]],
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

        Takes the same parameters as Multicall.call. `timeout` is one deadline
        shared by all chunks, chunks still waiting for a slot when it passes
        fail with ChunkTimeoutError. Cancelling this coroutine cancels every
        chunk in flight.

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

        semaphore = asyncio.Semaphore(max_concurrent_chunks) if max_concurrent_chunks > 0 else None
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None
        outcomes: List[Optional[ChunkResult]] = [None] * len(chunks)

        async def worker(i: int, chunk: List[Call3]):
            job = self._bounded_chunk(semaphore, i, chunk, address, deployless, block_identifier)
            try:
                if deadline is None:
                    outcomes[i] = ChunkResult(await job)
                else:
                    outcomes[i] = ChunkResult(await asyncio.wait_for(job, max(deadline - loop.time(), 0)))
            except asyncio.TimeoutError:
                log.warning(f"chunk {i} ({len(chunk)} calls) timed out after {timeout}s")
                outcomes[i] = ChunkResult(error=ChunkTimeoutError(
                    f"multicall timed out after {timeout}s", i, len(chunk)))
            except ChunkExecutionError as e:
                log.warning(f"chunk {i} ({len(chunk)} calls) failed: {e}")
                outcomes[i] = ChunkResult(error=e)

        await asyncio.gather(*(worker(i, chunk) for i, chunk in enumerate(chunks)))

        return self._reassemble(calls, chunks, outcomes, allow_failure)
