# Multicallkit - chunked, concurrent Multicall3 batching for web3.py

__copyright__ = "Copyright (C) 2022-2026, multicallkit contributors"
__license__ = "MIT"
__version__ = "1.0.0"
__status__ = "Production"

from .multicall import Multicall, AsyncMulticall, Call, CallResult, ChainRegistry, DeploylessEncoder
from .multicallable import Multicallable
from .async_multicallable import AsyncMulticallable
from .config import MulticallSettings, load_settings
