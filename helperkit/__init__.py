"""Reusable helper-chaining kernel (chain pointer, promises, registries).

This package is intentionally independent of `acceptance.*`. Anything tied to a
particular test framework (adapters, application lifecycle, built-in helpers,
configuration) must live in the consuming package.
"""

from helperkit.engine.chain import ChainedPromise, ChainState, is_thenable
from helperkit.engine.invoker import HelperInvoker, build_helper
from helperkit.engine.run_loop import Batch, RunLoop
from helperkit.helper_registry import Helper, HelperRegistry
from helperkit.waiter_registry import Waiter, WaiterRegistry

__all__ = [
    "Batch",
    "ChainState",
    "ChainedPromise",
    "Helper",
    "HelperInvoker",
    "HelperRegistry",
    "RunLoop",
    "Waiter",
    "WaiterRegistry",
    "build_helper",
    "is_thenable",
]
