import asyncio
import json

import pytest

from multicallkit import AsyncMulticallable, Multicallable
from multicallkit.errors import RawContractError

from conftest import ERC20_ABI, REVERTER, TOKEN_A, AsyncFakeNode, holder, make_async_multicall


class TestMulticallable:
    def test_exposes_view_functions_only(self, mc):
        token = Multicallable(TOKEN_A, ERC20_ABI, multicall=mc)
        assert isinstance(token.balanceOf, Multicallable.Function)
        with pytest.raises(AttributeError):
            token.transfer
        with pytest.raises(AttributeError):
            token.Transfer

    def test_call(self, mc, node):
        token = Multicallable(TOKEN_A, json.dumps(ERC20_ABI), multicall=mc)
        assert token.balanceOf([holder(i) for i in range(1, 6)]).call() == [1, 2, 3, 4, 5]
        assert len(node.requests) == 1

    def test_call_returns_errors_in_place(self, mc):
        token = Multicallable(TOKEN_A, ERC20_ABI, multicall=mc)
        outputs = token.balanceOf([[holder(1)], [REVERTER], [holder(3)]]).call(batch_size=36)
        assert outputs[0] == 1 and outputs[2] == 3
        assert isinstance(outputs[1], RawContractError)

    def test_detailed_call(self, mc):
        token = Multicallable(TOKEN_A, ERC20_ABI, multicall=mc)
        results = token.totalSupply([[], []]).detailed_call()
        assert [result.status for result in results] == ['success', 'success']
        assert results[0].result == 10 ** 24

    def test_fail_fast(self, mc):
        token = Multicallable(TOKEN_A, ERC20_ABI, multicall=mc)
        with pytest.raises(RawContractError):
            token.balanceOf([[holder(1)], [REVERTER]]).call(allow_failure=False)

    def test_requires_w3_or_multicall(self):
        with pytest.raises(TypeError):
            Multicallable(TOKEN_A, ERC20_ABI)


class TestAsyncMulticallable:
    def test_call(self):
        node = AsyncFakeNode()
        mc = make_async_multicall(node)

        async def run():
            token = AsyncMulticallable()
            await token.setup(TOKEN_A, ERC20_ABI, multicall=mc)
            return await token.balanceOf([holder(1), holder(2), REVERTER]).call(batch_size=36)

        outputs = asyncio.run(run())
        assert outputs[:2] == [1, 2]
        assert isinstance(outputs[2], RawContractError)
        assert len(node.requests) == 3

    def test_unknown_function(self):
        node = AsyncFakeNode()
        mc = make_async_multicall(node)
        token = AsyncMulticallable()
        asyncio.run(token.setup(TOKEN_A, ERC20_ABI, multicall=mc))
        with pytest.raises(AttributeError):
            token.approve
