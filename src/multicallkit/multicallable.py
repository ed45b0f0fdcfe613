from typing import Any, List, Optional, Union

from web3 import Web3
from web3.types import BlockIdentifier

from .multicall import Multicall, Call, CallResult
from .utils import parse_abi


class Multicallable:
    class Function:
        class FCall:
            def __init__(self, function: 'Multicallable.Function', params: list):
                self.function = function
                self.params = params

            def call(self, allow_failure: bool = True, batch_size: Optional[int] = None,
                     block_identifier: BlockIdentifier = 'latest',
                     max_concurrent_chunks: Optional[int] = None) -> List[Any]:
                """Decoded outputs in params order, failed calls give their exception instance."""
                results = self.detailed_call(allow_failure=allow_failure, batch_size=batch_size,
                                             block_identifier=block_identifier,
                                             max_concurrent_chunks=max_concurrent_chunks)
                return [result.result if result.ok else result.error for result in results]

            def detailed_call(self, allow_failure: bool = True, batch_size: Optional[int] = None,
                              block_identifier: BlockIdentifier = 'latest',
                              max_concurrent_chunks: Optional[int] = None) -> List[CallResult]:
                parent = self.function.parent
                calls = [Call(parent._target, parent._abi, self.function.name, args) for args in self.params]
                return parent._multicall.call(calls, allow_failure=allow_failure, batch_size=batch_size,
                                              block_identifier=block_identifier,
                                              max_concurrent_chunks=max_concurrent_chunks)

        def __init__(self, name: str, parent: 'Multicallable'):
            self.name = name
            self.parent = parent

        def __call__(self, params: list) -> FCall:
            return self.FCall(self, params)

    def __init__(self, target_address: str, target_abi: Union[str, list], w3: Web3 = None,
                 multicall: Multicall = None):
        if not w3 and not multicall:
            raise TypeError("__init__() missing 1 required argument: 'w3' or 'multicall' (at least one required)")
        self._multicall = multicall or Multicall(w3)
        self._target = Web3.to_checksum_address(target_address)
        self._abi = parse_abi(target_abi)
        self._functions = {}
        self._setup_functions()

    def __getattr__(self, function_name: str) -> 'Multicallable.Function':
        if function_name.startswith('_') or function_name not in self._functions:
            raise AttributeError(f"The function '{function_name}' was not found in this contract's abi.")
        return self._functions[function_name]

    def _setup_functions(self):
        for func in filter(lambda x: x.get('stateMutability') in ('view', 'pure'), self._abi):
            function = Multicallable.Function(func['name'], self)
            self._functions[func['name']] = function
            setattr(self, func['name'], function)
