"""Helper invocation: synchronous passthrough or append-to-chain."""

from __future__ import annotations

import inspect
import logging
from typing import Any

from helperkit.engine.chain import ChainedPromise, ChainState
from helperkit.helper_registry import Helper, HelperRegistry

logger = logging.getLogger(__name__)


class HelperInvoker:
    def __init__(self, app: Any, helper: Helper, *, chain: ChainState) -> None:
        if not isinstance(helper, Helper):
            raise TypeError(f"helper must be a Helper (type={type(helper).__name__})")
        self._app = app
        self._helper = helper
        self._chain = chain
        self.__name__ = helper.name
        self.__doc__ = helper.doc

    def __repr__(self) -> str:
        return f"<HelperInvoker {self._helper.name} wait={self._helper.wait}>"

    @property
    def helper(self) -> Helper:
        return self._helper

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        helper = self._helper
        app = self._app
        chain = self._chain

        # Non-waiting helpers (queries like `find`) must hand back a value in the same tick.
        if not helper.wait:
            logger.debug("Invoking helper %s (wait=False)", helper.name)
            return helper.method(app, *args, **kwargs)

        last_promise = chain.last_promise
        if last_promise is None:
            logger.debug("Invoking helper %s (starts chain)", helper.name)
            result = helper.method(app, *args, **kwargs)
            if inspect.isawaitable(result) and not isinstance(result, ChainedPromise):
                result = chain.resolve(result)
            return result

        logger.debug("Invoking helper %s (after %r)", helper.name, last_promise)
        return chain.run_loop.run_batched(
            lambda: chain.resolve(last_promise).then(
                lambda _settled: helper.method(app, *args, **kwargs)
            )
        )


def build_helper(
    app: Any, name: str, *, registry: HelperRegistry, chain: ChainState
) -> HelperInvoker:
    return HelperInvoker(app, registry.get(name), chain=chain)
