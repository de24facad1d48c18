"""Chain pointer ownership and the isolating promise type.

Every `ChainedPromise` records itself as the chain's "last promise" when it is
constructed, which lets helper calls serialize after one another without the
caller threading promises through explicitly. Success continuations run inside
an isolation frame so helpers invoked from a continuation build their own
sub-chain instead of appending to the chain that contains the continuation.

This module is intentionally app-agnostic and must not import `acceptance.*`.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from contextlib import contextmanager
from typing import Any, Callable, Coroutine, Iterator, Literal, TypeAlias

from .run_loop import RunLoop

logger = logging.getLogger(__name__)

PromiseState: TypeAlias = Literal["pending", "fulfilled", "rejected"]
Resolve: TypeAlias = Callable[[Any], None]
Reject: TypeAlias = Callable[[BaseException], None]
Resolver: TypeAlias = Callable[[Resolve, Reject], Any]
ErrorHook: TypeAlias = Callable[[BaseException], None]
ChainObserver: TypeAlias = Callable[["ChainedPromise | None"], None]


def is_thenable(value: Any) -> bool:
    return isinstance(value, ChainedPromise) or inspect.isawaitable(value)


class ChainState:
    """Single owner of the chain pointer.

    There is one pointer per `ChainState`, shared by every caller: a helper
    invoked from a loop callback or a task chains after the latest helper, not
    after whatever was current when that callback was scheduled. Coroutine
    helpers are the one exception; `spawn` swaps in their own sub-chain
    pointer each time they resume.
    """

    def __init__(self, *, run_loop: RunLoop | None = None) -> None:
        self.run_loop = run_loop or RunLoop()
        self.capabilities: dict[str, Callable[..., Any]] = {}
        self.on_error: ErrorHook | None = None
        self._last: ChainedPromise | None = None
        self._observers: list[ChainObserver] = []

    @property
    def last_promise(self) -> ChainedPromise | None:
        return self._last

    def set_last_promise(self, promise: ChainedPromise | None) -> None:
        self._last = promise
        if self._observers:
            self.run_loop.schedule_once(("chain", id(self)), self._notify)

    def reset(self) -> None:
        self.set_last_promise(None)

    def add_observer(self, observer: ChainObserver) -> None:
        if not callable(observer):
            raise TypeError(f"Chain observer must be callable (type={type(observer).__name__})")
        self._observers.append(observer)

    def remove_observer(self, observer: ChainObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify(self) -> None:
        current = self._last
        for observer in list(self._observers):
            observer(current)

    def promise(self, resolver: Resolver | None = None) -> ChainedPromise:
        return ChainedPromise(resolver, chain=self)

    def resolve(self, value: Any) -> ChainedPromise:
        return ChainedPromise(lambda resolve, _reject: resolve(value), chain=self)

    def spawn(
        self, awaitable: Any, *, loop: asyncio.AbstractEventLoop
    ) -> asyncio.Future[Any]:
        """Schedule an awaitable; coroutines get their own sub-chain pointer."""

        if asyncio.iscoroutine(awaitable):
            return loop.create_task(self._drive(awaitable))
        return asyncio.ensure_future(awaitable, loop=loop)

    async def _drive(self, coro: Coroutine[Any, Any, Any]) -> Any:
        return await _SubChainSteps(self, coro)

    @contextmanager
    def isolation(self, inner: ChainedPromise | None = None) -> Iterator[None]:
        outer = self._last
        self._last = inner
        try:
            yield
        finally:
            self.set_last_promise(outer)

    def isolate(self, fn: Callable[[Any], Any], value: Any) -> Any:
        """Run a continuation so nested helpers collapse into one result.

        If the continuation returns a thenable, or did not start any chained
        work, its return value is used as-is. Otherwise the result waits for
        the last promise created during the continuation and then resolves
        with the continuation's plain return value.
        """

        with self.isolation():
            result = fn(value)
            inner = self._last
            if is_thenable(result) or inner is None:
                return result
            return self.run_loop.run_batched(
                lambda: self.resolve(inner).then(lambda _settled: result)
            )

    def report(self, error: BaseException) -> None:
        hook = self.on_error
        if hook is None:
            logger.error(
                "Unhandled rejection in helper chain: %s",
                error,
                exc_info=(type(error), error, error.__traceback__),
            )
            return
        hook(error)


class _SubChainSteps:
    """Drive a coroutine one step at a time with its own chain pointer.

    On every resume the shared pointer is saved and replaced by the pointer the
    coroutine left behind on its previous step; when the coroutine suspends,
    its pointer is stashed and the shared one is put back. Helpers awaited
    inside a coroutine helper therefore never chain after the promise that is
    waiting on that same coroutine, while everything outside it keeps seeing
    the one shared pointer.
    """

    def __init__(self, chain: ChainState, coro: Coroutine[Any, Any, Any]) -> None:
        self._chain = chain
        self._coro = coro
        self._inner: ChainedPromise | None = None

    def _step(self, value: Any, error: BaseException | None) -> tuple[bool, Any]:
        chain = self._chain
        with chain.isolation(self._inner):
            try:
                if error is None:
                    return False, self._coro.send(value)
                return False, self._coro.throw(error)
            except StopIteration as stop:
                return True, stop.value
            finally:
                self._inner = chain.last_promise

    def __await__(self):
        value: Any = None
        error: BaseException | None = None
        while True:
            done, result = self._step(value, error)
            if done:
                return result
            try:
                value, error = (yield result), None
            except GeneratorExit:
                self._coro.close()
                raise
            except BaseException as exc:
                value, error = None, exc


class ChainedPromise:
    def __init__(
        self,
        resolver: Resolver | None = None,
        *,
        chain: ChainState,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if not isinstance(chain, ChainState):
            raise TypeError(f"chain must be a ChainState (type={type(chain).__name__})")
        self._chain = chain
        self._loop = loop or asyncio.get_running_loop()
        self._state: PromiseState = "pending"
        self._result: Any = None
        self._adopting = False
        self._handled = False
        self._reactions: list[tuple[Callable[[Any], None], Callable[[BaseException], None]]] = []
        self._future: asyncio.Future[Any] | None = None

        if resolver is not None:
            try:
                resolver(self._resolve, self._reject)
            except Exception as exc:
                self._reject(exc)

        chain.set_last_promise(self)

    def __repr__(self) -> str:
        return f"<ChainedPromise {self._state} at {id(self):#x}>"

    @property
    def state(self) -> PromiseState:
        return self._state

    @property
    def chain(self) -> ChainState:
        return self._chain

    def then(
        self,
        on_success: Callable[[Any], Any] | None = None,
        on_failure: Callable[[BaseException], Any] | None = None,
    ) -> ChainedPromise:
        if on_success is not None:
            on_success = functools.partial(self._chain.isolate, on_success)
        return self._derive(on_success, on_failure)

    def catch(self, on_failure: Callable[[BaseException], Any]) -> ChainedPromise:
        return self.then(None, on_failure)

    def invoke_helper(self, name: str, *args: Any, **kwargs: Any) -> Any:
        fn = self._chain.capabilities.get(name)
        if fn is None:
            available = ", ".join(sorted(self._chain.capabilities)) or "<none>"
            raise ValueError(f"Unknown helper capability: {name} (available: {available})")
        return fn(*args, **kwargs)

    def __await__(self):
        self._handled = True
        if self._future is None:
            self._future = self._loop.create_future()
            if self._state == "fulfilled":
                self._future.set_result(self._result)
            elif self._state == "rejected":
                self._future.set_exception(self._result)
        return self._future.__await__()

    def _derive(
        self,
        on_success: Callable[[Any], Any] | None,
        on_failure: Callable[[BaseException], Any] | None,
    ) -> ChainedPromise:
        child = ChainedPromise(chain=self._chain, loop=self._loop)

        def fulfilled(value: Any) -> None:
            if on_success is None:
                child._resolve(value)
                return
            try:
                result = on_success(value)
            except Exception as exc:
                child._reject(exc)
            else:
                child._resolve(result)

        def rejected(error: BaseException) -> None:
            if on_failure is None:
                child._reject(error)
                return
            try:
                result = on_failure(error)
            except Exception as exc:
                child._reject(exc)
            else:
                child._resolve(result)

        self._subscribe(fulfilled, rejected)
        return child

    def _subscribe(
        self,
        on_fulfilled: Callable[[Any], None],
        on_rejected: Callable[[BaseException], None],
    ) -> None:
        self._handled = True
        if self._state == "pending":
            self._reactions.append((on_fulfilled, on_rejected))
            return
        self._dispatch(on_fulfilled, on_rejected)

    def _dispatch(
        self,
        on_fulfilled: Callable[[Any], None],
        on_rejected: Callable[[BaseException], None],
    ) -> None:
        if self._state == "fulfilled":
            self._loop.call_soon(on_fulfilled, self._result)
        else:
            self._loop.call_soon(on_rejected, self._result)

    def _resolve(self, value: Any) -> None:
        if self._state != "pending" or self._adopting:
            return
        if value is self:
            self._reject(TypeError("A promise cannot be resolved with itself"))
            return
        if isinstance(value, ChainedPromise):
            self._adopting = True
            value._subscribe(self._fulfill, self._settle_rejected)
            return
        if inspect.isawaitable(value):
            self._adopting = True
            future = self._chain.spawn(value, loop=self._loop)
            future.add_done_callback(self._adopt_future)
            return
        self._fulfill(value)

    def _reject(self, error: BaseException) -> None:
        if self._state != "pending" or self._adopting:
            return
        self._settle_rejected(error)

    def _adopt_future(self, future: asyncio.Future[Any]) -> None:
        if future.cancelled():
            self._settle_rejected(asyncio.CancelledError())
            return
        error = future.exception()
        if error is not None:
            self._settle_rejected(error)
            return
        self._fulfill(future.result())

    def _fulfill(self, value: Any) -> None:
        self._settle("fulfilled", value)

    def _settle_rejected(self, error: BaseException) -> None:
        self._settle("rejected", error)

    def _settle(self, state: PromiseState, result: Any) -> None:
        if self._state != "pending":
            return
        self._state = state
        self._result = result

        reactions, self._reactions = self._reactions, []
        for on_fulfilled, on_rejected in reactions:
            self._dispatch(on_fulfilled, on_rejected)

        if self._future is not None and not self._future.done():
            if state == "fulfilled":
                self._future.set_result(result)
            else:
                self._future.set_exception(result)

        if state == "rejected" and not self._handled:
            self._loop.call_soon(self._report_if_unhandled)

    def _report_if_unhandled(self) -> None:
        if self._handled:
            return
        self._handled = True
        self._chain.report(self._result)
