"""Engine primitives for chaining helper calls."""

from helperkit.engine.chain import ChainedPromise, ChainState, is_thenable
from helperkit.engine.invoker import HelperInvoker, build_helper
from helperkit.engine.run_loop import Batch, RunLoop

__all__ = [
    "Batch",
    "ChainState",
    "ChainedPromise",
    "HelperInvoker",
    "RunLoop",
    "build_helper",
    "is_thenable",
]
