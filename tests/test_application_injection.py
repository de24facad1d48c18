import asyncio
import logging

import pytest

from acceptance.framework import (
    Adapter,
    Application,
    HarnessConfig,
    HelperHarness,
    HelperNotFoundError,
    RecordingAdapter,
    TransitionAborted,
)


def _make_app(config: HarnessConfig | None = None) -> tuple[HelperHarness, Application]:
    harness = HelperHarness()
    return harness, Application("injection-app", config=config, harness=harness)


def test_inject_binds_helpers_everywhere():
    harness, app = _make_app()
    harness.register_helper("find", lambda app_, selector: f"found {selector}", wait=False)
    namespace = {}

    app.inject_test_helpers(namespace)

    assert namespace["find"](".title") == "found .title"
    assert app.test_helpers["find"](".title") == "found .title"
    assert namespace["find"] is app.test_helpers["find"] is harness.chain.capabilities["find"]
    assert "find" in harness.chain.capabilities
    assert harness.chain.on_error == harness.on_promise_rejection


def test_unregister_restores_shadowed_namespace_binding():
    harness, app = _make_app()
    harness.register_helper("visit", lambda app_, path: path, wait=False)
    harness.register_helper("find", lambda app_, selector: selector, wait=False)
    namespace = {"visit": "original visit"}

    app.inject_test_helpers(namespace)
    assert callable(namespace["visit"])

    harness.unregister_helper("visit")
    harness.unregister_helper("find")

    assert namespace == {"visit": "original visit"}
    assert "visit" not in harness.chain.capabilities


def test_reinjection_keeps_the_first_original():
    harness, app = _make_app()
    harness.register_helper("visit", lambda app_, path: path, wait=False)
    namespace = {"visit": "original visit"}

    app.inject_test_helpers(namespace)
    app.inject_test_helpers(namespace)
    app.remove_test_helpers()

    assert namespace == {"visit": "original visit"}


def test_remove_helpers_clears_bindings_and_error_hook():
    harness, app = _make_app()
    harness.register_helper("find", lambda app_, selector: selector, wait=False)
    namespace = {}

    app.inject_test_helpers(namespace)
    app.remove_test_helpers()

    assert namespace == {}
    assert app.test_helpers == {}
    assert harness.chain.capabilities == {}
    assert harness.chain.on_error is None
    assert "find" in harness.helpers


def test_inject_callbacks_receive_the_application():
    harness, app = _make_app()
    seen = []
    harness.on_inject_helpers(seen.append)

    app.inject_test_helpers()
    app.inject_test_helpers()

    assert seen == [app, app]

    with pytest.raises(TypeError):
        harness.on_inject_helpers("not callable")


def test_helper_lookup_error_is_helper_not_found():
    harness, app = _make_app()

    with pytest.raises(HelperNotFoundError):
        harness.helper(app, "visit")


def test_rejection_routing():
    harness, _app = _make_app()
    adapter = RecordingAdapter()
    harness.adapter = adapter

    harness.on_promise_rejection(TransitionAborted("redirect"))
    harness.on_promise_rejection(RuntimeError("boom"))

    assert [str(error) for error in adapter.exceptions] == ["boom"]


def test_rejection_without_adapter_is_logged(caplog):
    harness, _app = _make_app()

    with caplog.at_level(logging.ERROR, logger="acceptance"):
        harness.on_promise_rejection(RuntimeError("no adapter"))

    assert "no adapter" in caplog.text


def test_base_adapter_reraises():
    with pytest.raises(RuntimeError, match="surface me"):
        Adapter().exception(RuntimeError("surface me"))


def test_setup_for_testing_defers_readiness_and_installs_defaults():
    harness, app = _make_app()

    app.setup_for_testing()

    assert app.testing is True
    assert app.router_location == "none"
    assert app.is_ready is False
    assert isinstance(harness.adapter, RecordingAdapter)
    assert "wait" in harness.helpers
    assert "and_then" in harness.helpers

    app.advance_readiness()
    assert app.is_ready is True

    with pytest.raises(RuntimeError, match="without a matching defer"):
        app.advance_readiness()


def test_setup_for_testing_honours_config():
    config = HarnessConfig(install_default_helpers=False, adapter_kind="raising", default_wait=False)
    harness, app = _make_app(config)

    app.setup_for_testing()
    harness.register_helper("query", lambda app_: "q")

    assert type(harness.adapter) is Adapter
    assert "wait" not in harness.helpers
    assert harness.helpers.get("query").wait is False


def test_setup_for_testing_keeps_existing_adapter():
    harness, app = _make_app()
    adapter = RecordingAdapter()
    harness.adapter = adapter

    app.setup_for_testing()

    assert harness.adapter is adapter


def test_teardown_resets_shared_state():
    harness, app = _make_app()
    harness.register_helper("visit", lambda app_: asyncio.sleep(0))
    harness.register_waiter(lambda: True)
    namespace = {}
    app.inject_test_helpers(namespace)

    async def _main():
        await app.test_helpers["visit"]()
        assert harness.last_promise is not None
        harness.teardown()
        assert harness.last_promise is None

    asyncio.run(_main())

    assert namespace == {}
    assert len(harness.waiters) == 0
    assert harness.chain.capabilities == {}
    assert harness.chain.on_error is None


def test_application_run_opens_a_batch():
    harness, app = _make_app()

    depth = app.run(lambda: harness.run_loop.current.depth)

    assert depth == 0
    assert harness.run_loop.current is None


def test_application_name_must_be_non_empty():
    with pytest.raises(ValueError):
        Application(" ", harness=HelperHarness())
