import json

import pytest

from multicallkit.multicall import Call3
from multicallkit.utils import call_cost, get_type, parse_abi, plan_chunks

from conftest import ERC20_ABI, TOKEN_A


def make_calls(*sizes):
    return [Call3(TOKEN_A, True, bytes([i % 256]) * size) for i, size in enumerate(sizes)]


class TestPlanChunks:
    def test_empty_input_gives_no_chunks(self):
        assert plan_chunks([], 1024) == []

    def test_everything_fits_in_one_chunk(self):
        calls = make_calls(36, 36, 36)
        assert plan_chunks(calls, 1024) == [calls]

    def test_splits_when_budget_is_exceeded(self):
        calls = make_calls(36, 36, 36, 36, 36)
        chunks = plan_chunks(calls, 72)
        assert [len(chunk) for chunk in chunks] == [2, 2, 1]

    def test_concatenation_reproduces_input(self):
        calls = make_calls(10, 500, 3, 0, 700, 700, 1, 1024, 2, 90)
        for budget in (1, 2, 50, 700, 1024, 4096):
            chunks = plan_chunks(calls, budget)
            assert [call for chunk in chunks for call in chunk] == calls
            assert all(chunks)

    def test_chunks_respect_budget_unless_single_oversized_call(self):
        calls = make_calls(10, 500, 3, 0, 700, 700, 1, 2000, 2, 90)
        for budget in (50, 700, 1024):
            for chunk in plan_chunks(calls, budget):
                total = sum(call_cost(call.call_data) for call in chunk)
                assert total <= budget or len(chunk) == 1

    def test_oversized_call_gets_its_own_chunk(self):
        calls = make_calls(10, 5000, 10)
        assert [len(chunk) for chunk in plan_chunks(calls, 100)] == [1, 1, 1]

    def test_empty_calldata_costs_two_bytes(self):
        calls = make_calls(0, 0, 0)
        assert call_cost(b'') == 2
        assert [len(chunk) for chunk in plan_chunks(calls, 4)] == [2, 1]

    def test_exact_fit_stays_in_chunk(self):
        calls = make_calls(50, 50)
        assert len(plan_chunks(calls, 100)) == 1

    @pytest.mark.parametrize("budget", [0, -1, None])
    def test_non_positive_budget_disables_chunking(self, budget):
        calls = make_calls(5000, 5000, 5000)
        assert plan_chunks(calls, budget) == [calls]

    def test_is_deterministic(self):
        calls = make_calls(10, 500, 3, 0, 700, 700, 1, 2000, 2, 90)
        assert plan_chunks(calls, 512) == plan_chunks(calls, 512)


class TestGetType:
    def test_plain_type(self):
        assert get_type({"type": "uint256", "internalType": "uint256"}) == "uint256"

    def test_contract_internal_type_is_ignored(self):
        assert get_type({"type": "address", "internalType": "contract IERC20"}) == "address"

    def test_struct_array(self):
        schema = {
            "type": "tuple[]",
            "internalType": "struct Multicall3.Result[]",
            "components": [{"type": "bool"}, {"type": "bytes"}],
        }
        assert get_type(schema) == "(bool,bytes)[]"

    def test_nested_tuple(self):
        schema = {"type": "tuple", "components": [{"type": "uint8"}, {"type": "tuple[2]", "components": [
            {"type": "address"}]}]}
        assert get_type(schema) == "(uint8,(address)[2])"


class TestParseAbi:
    def test_accepts_json_string_and_bytes(self):
        raw = json.dumps(ERC20_ABI)
        assert parse_abi(raw) == ERC20_ABI
        assert parse_abi(raw.encode()) == ERC20_ABI

    def test_accepts_list_and_single_element(self):
        assert parse_abi(ERC20_ABI) == ERC20_ABI
        assert parse_abi(ERC20_ABI[0]) == [ERC20_ABI[0]]

    def test_accepts_object_with_abi(self):
        class Contract:
            abi = ERC20_ABI

        assert parse_abi(Contract()) == ERC20_ABI

    def test_rejects_other_types(self):
        with pytest.raises(TypeError):
            parse_abi(42)

    def test_invalid_json(self):
        with pytest.raises(ValueError):
            parse_abi("not json")
