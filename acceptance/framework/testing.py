"""Helper registration, injection, and failure reporting for acceptance tests.

`HelperHarness` is the entry point test authors use:

* register/unregister helpers that are injected into an application
* register callbacks fired whenever helpers are injected
* register waiters polled by `wait` before a test proceeds
* choose the adapter that surfaces chain failures to the test runner

Helpers registered with `wait=False` (queries like `find`) return their value
immediately. Every other helper is serialized onto the harness chain: calling
`visit()` and then `click()` runs `click` only after `visit` has settled, even
though the test never passes `visit`'s promise along.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from helperkit import (
    ChainedPromise,
    ChainState,
    HelperInvoker,
    HelperRegistry,
    RunLoop,
    Waiter,
    WaiterRegistry,
    build_helper,
)
from helperkit.engine.chain import Resolver

from acceptance.framework.adapter import Adapter
from acceptance.framework.config import HarnessConfig
from acceptance.framework.errors import HelperNotFoundError, TransitionAborted

if TYPE_CHECKING:
    from acceptance.framework.application import Application

logger = logging.getLogger(__name__)

InjectCallback = Callable[["Application"], None]

_MISSING = object()


@dataclass
class _Shadow:
    namespace: MutableMapping[str, Any]
    original: Any


class HelperHarness:
    __test__ = False

    def __init__(self, *, config: HarnessConfig | None = None) -> None:
        self.helpers = HelperRegistry()
        self.waiters = WaiterRegistry()
        self.run_loop = RunLoop()
        self.chain = ChainState(run_loop=self.run_loop)
        self.adapter: Adapter | None = None
        self.config = config or HarnessConfig()
        self.default_wait = self.config.default_wait
        self._inject_callbacks: list[InjectCallback] = []
        self._shadowed: dict[str, _Shadow] = {}

    def configure(self, config: HarnessConfig) -> None:
        self.config = config
        self.default_wait = config.default_wait

    @property
    def last_promise(self) -> ChainedPromise | None:
        return self.chain.last_promise

    def register_helper(
        self, name: str, method: Callable[..., Any], *, wait: bool | None = None
    ) -> None:
        """Register a helper; it is called with the application as its first argument."""

        effective_wait = self.default_wait if wait is None else wait
        helper = self.helpers.register(name, method, wait=effective_wait)
        logger.debug("Registered helper %s (wait=%s)", helper.name, helper.wait)

    def unregister_helper(self, name: str) -> None:
        removed = self.helpers.unregister(name)
        self._restore(name)
        self.chain.capabilities.pop(name, None)
        if removed is not None:
            logger.debug("Unregistered helper %s", removed.name)

    def on_inject_helpers(self, callback: InjectCallback) -> None:
        if not callable(callback):
            raise TypeError(f"Inject callback must be callable (type={type(callback).__name__})")
        self._inject_callbacks.append(callback)

    def promise(self, resolver: Resolver | None = None) -> ChainedPromise:
        """Create a chained promise; async helpers should return one (see `wait`)."""

        return self.chain.promise(resolver)

    def resolve(self, value: Any) -> ChainedPromise:
        return self.chain.resolve(value)

    def register_waiter(self, predicate: Callable[..., Any], context: Any = None) -> Waiter:
        """
        Register an idle predicate polled by `wait`.

        With a `context`, the predicate is called as `predicate(context)`:

            harness.register_waiter(Database.has_no_pending_transactions, context=db)
        """

        return self.waiters.register(predicate, context)

    def unregister_waiter(self, predicate: Callable[..., Any], context: Any = None) -> None:
        self.waiters.unregister(predicate, context)

    def helper(self, app: Application, name: str) -> HelperInvoker:
        try:
            return build_helper(app, name, registry=self.helpers, chain=self.chain)
        except ValueError as exc:
            raise HelperNotFoundError(str(exc)) from exc

    def inject_helpers(
        self, app: Application, namespace: MutableMapping[str, Any] | None = None
    ) -> None:
        """
        Bind every registered helper for `app`.

        Helpers land in `app.test_helpers`, in the chain capability set (so
        `promise.invoke_helper(name, ...)` works), and in `namespace` when one is
        given. Existing `namespace` bindings are remembered and restored by
        `unregister_helper` / `remove_helpers`.
        """

        app.test_helpers = {}
        for name in self.helpers:
            invoker = self.helper(app, name)
            if namespace is not None:
                shadow = self._shadowed.get(name)
                if shadow is None or shadow.namespace is not namespace:
                    self._restore(name)
                    self._shadowed[name] = _Shadow(namespace, namespace.get(name, _MISSING))
                namespace[name] = invoker
            app.test_helpers[name] = invoker
            self.chain.capabilities[name] = invoker

        for callback in list(self._inject_callbacks):
            callback(app)

        self.chain.on_error = self.on_promise_rejection
        logger.debug("Injected %d helper(s) into %s", len(app.test_helpers), app.name)

    def remove_helpers(self, app: Application) -> None:
        for name in self.helpers:
            self._restore(name)
            app.test_helpers.pop(name, None)
            self.chain.capabilities.pop(name, None)
        if self.chain.on_error == self.on_promise_rejection:
            self.chain.on_error = None
        logger.debug("Removed helpers from %s", app.name)

    def on_promise_rejection(self, error: BaseException) -> None:
        if isinstance(error, TransitionAborted):
            logger.debug("Ignoring aborted transition: %s", error)
            return
        adapter = self.adapter
        if adapter is None:
            logger.error(
                "Helper chain failed with no adapter configured: %s",
                error,
                exc_info=(type(error), error, error.__traceback__),
            )
            return
        adapter.exception(error)

    def teardown(self) -> None:
        for name in list(self._shadowed):
            self._restore(name)
        self.waiters.clear()
        self.chain.reset()
        self.chain.capabilities.clear()
        self.chain.on_error = None

    def _restore(self, name: str) -> None:
        shadow = self._shadowed.pop(name, None)
        if shadow is None:
            return
        if shadow.original is _MISSING:
            shadow.namespace.pop(name, None)
        else:
            shadow.namespace[name] = shadow.original


harness = HelperHarness()
