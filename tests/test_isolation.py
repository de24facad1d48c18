import asyncio

import pytest

from acceptance.framework.adapter import RecordingAdapter
from acceptance.framework.application import Application
from acceptance.framework.testing import HelperHarness
from helperkit import ChainedPromise, ChainState


def test_plain_result_without_nested_chain_is_returned_as_is():
    async def _main():
        chain = ChainState()
        outer = chain.resolve("outer")

        assert chain.isolate(lambda value: value * 2, 21) == 42
        assert chain.last_promise is outer

    asyncio.run(_main())


def test_thenable_result_is_returned_as_is():
    async def _main():
        chain = ChainState()
        outer = chain.resolve("outer")
        created = []

        def continuation(_value):
            created.append(chain.resolve("inner"))
            return created[0]

        assert chain.isolate(continuation, None) is created[0]
        assert chain.last_promise is outer

    asyncio.run(_main())


def test_plain_result_waits_for_nested_chain():
    async def _main():
        chain = ChainState()
        events = []

        async def slow():
            await asyncio.sleep(0.01)
            events.append("inner settled")

        def continuation(_value):
            chain.resolve(slow())
            return "plain"

        outer = chain.resolve("outer")
        result = chain.isolate(continuation, None)

        assert chain.last_promise is outer
        assert isinstance(result, ChainedPromise)
        assert await result == "plain"
        assert events == ["inner settled"]

    asyncio.run(_main())


def test_pointer_is_restored_when_continuation_raises():
    async def _main():
        chain = ChainState()
        outer = chain.resolve("outer")

        def continuation(_value):
            chain.resolve("inner")
            raise RuntimeError("continuation failed")

        with pytest.raises(RuntimeError, match="continuation failed"):
            chain.isolate(continuation, None)

        assert chain.last_promise is outer

    asyncio.run(_main())


def test_nested_isolation_restores_each_level():
    async def _main():
        chain = ChainState()
        seen = []

        def inner_continuation(_value):
            chain.resolve("deep")
            return "deep-result"

        def outer_continuation(_value):
            seen.append(chain.last_promise)
            middle = chain.resolve("middle")
            result = chain.isolate(inner_continuation, None)
            seen.append(chain.last_promise is middle)
            return result

        outer = chain.resolve("outer")
        result = chain.isolate(outer_continuation, None)

        assert seen == [None, True]
        assert chain.last_promise is outer
        assert await result == "deep-result"

    asyncio.run(_main())


def test_helper_called_from_a_helper_runs_before_the_outer_settles():
    harness = HelperHarness()
    harness.adapter = RecordingAdapter()
    app = Application("isolation-app", harness=harness)
    events = []

    async def inner(app_):
        events.append("inner:start")
        await asyncio.sleep(0.005)
        events.append("inner:end")

    def outer(app_):
        events.append("outer:start")
        app_.test_helpers["inner"]()
        return "outer-done"

    def after(app_):
        events.append("after")
        return "after-done"

    harness.register_helper("inner", inner)
    harness.register_helper("outer", outer)
    harness.register_helper("after", after)
    app.inject_test_helpers()

    async def _main():
        h = app.test_helpers
        h["inner"]()
        outer_promise = h["outer"]()
        after_promise = h["after"]()

        assert await outer_promise == "outer-done"
        assert events[-1] == "inner:end"
        assert await after_promise == "after-done"

    asyncio.run(_main())

    assert events == [
        "inner:start",
        "inner:end",
        "outer:start",
        "inner:start",
        "inner:end",
        "after",
    ]
    assert harness.adapter.exceptions == []
