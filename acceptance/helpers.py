"""Built-in waiting helpers: `wait` and `and_then`."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Callable

from helperkit import ChainedPromise, Waiter

from acceptance.framework.errors import WaitTimeoutError

if TYPE_CHECKING:
    from acceptance.framework.application import Application
    from acceptance.framework.testing import HelperHarness

logger = logging.getLogger(__name__)


def _waiter_label(waiter: Waiter) -> str:
    name = getattr(waiter.predicate, "__qualname__", None) or repr(waiter.predicate)
    if waiter.context is None:
        return name
    return f"{name}({waiter.context!r})"


def pending_conditions(app: Application) -> list[str]:
    """Return the reasons `app` is not settled yet (empty when idle)."""

    harness = app.harness
    pending: list[str] = []
    if harness.run_loop.current is not None:
        pending.append("run loop")
    for waiter in harness.waiters.snapshot():
        if waiter.context is None:
            settled = waiter.predicate()
        else:
            settled = waiter.predicate(waiter.context)
        if not settled:
            pending.append(_waiter_label(waiter))
    return pending


def wait(app: Application, value: Any = None) -> ChainedPromise:
    """Resolve with `value` once the run loop is idle and every waiter is satisfied."""

    harness = app.harness
    interval = app.config.poll_interval_seconds
    timeout = app.config.wait_timeout_seconds

    def resolver(resolve: Callable[[Any], None], reject: Callable[[BaseException], None]) -> None:
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        adapter = harness.adapter
        if adapter is not None:
            adapter.async_start()

        def finish() -> None:
            if adapter is not None:
                adapter.async_end()

        def poll() -> None:
            try:
                pending = pending_conditions(app)
            except Exception as exc:
                finish()
                reject(exc)
                return
            if pending:
                if deadline is not None and loop.time() >= deadline:
                    logger.debug("wait timed out; pending: %s", ", ".join(pending))
                    finish()
                    reject(WaitTimeoutError(timeout, pending))
                    return
                loop.call_later(interval, poll)
                return
            finish()
            harness.run_loop.run(resolve, value)

        loop.call_soon(poll)

    return harness.promise(resolver)


def and_then(app: Application, callback: Callable[[Application], Any]) -> ChainedPromise:
    """Run `callback(app)` after the chain settles, then wait for the app to go idle.

    Helpers called inside `callback` form their own sub-chain, which is collapsed
    into the value `wait` resolves with.
    """

    result = app.harness.chain.isolate(lambda _value: callback(app), None)
    return wait(app, result)


DEFAULT_HELPERS: dict[str, Callable[..., Any]] = {
    "wait": wait,
    "and_then": and_then,
}


def install_default_helpers(harness: HelperHarness) -> None:
    for name, method in DEFAULT_HELPERS.items():
        harness.register_helper(name, method, wait=True)
