from typing import Optional, Protocol

from web3 import AsyncWeb3, Web3
from web3.types import BlockIdentifier, TxParams


class Transport(Protocol):
    def call(self, transaction: TxParams, block_identifier: BlockIdentifier) -> bytes: ...

    def chain_id(self) -> Optional[int]: ...


class AsyncTransport(Protocol):
    async def call(self, transaction: TxParams, block_identifier: BlockIdentifier) -> bytes: ...

    async def chain_id(self) -> Optional[int]: ...


class Web3Transport:
    """eth_call through a Web3 instance. Retries, if any, belong to its provider."""

    def __init__(self, w3: Web3):
        self.w3 = w3

    def call(self, transaction: TxParams, block_identifier: BlockIdentifier) -> bytes:
        return bytes(self.w3.eth.call(transaction, block_identifier=block_identifier))

    def chain_id(self) -> Optional[int]:
        return self.w3.eth.chain_id


class AsyncWeb3Transport:
    def __init__(self, w3: AsyncWeb3):
        self.w3 = w3

    async def call(self, transaction: TxParams, block_identifier: BlockIdentifier) -> bytes:
        return bytes(await self.w3.eth.call(transaction, block_identifier=block_identifier))

    async def chain_id(self) -> Optional[int]:
        return await self.w3.eth.chain_id
