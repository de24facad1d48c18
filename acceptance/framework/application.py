from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any, Callable

from acceptance.framework.adapter import build_adapter
from acceptance.framework.config import HarnessConfig
from acceptance.framework.testing import HelperHarness, harness as default_harness

logger = logging.getLogger(__name__)


class Application:
    """Application context handed to every helper as its first argument."""

    def __init__(
        self,
        name: str = "app",
        *,
        config: HarnessConfig | None = None,
        harness: HelperHarness | None = None,
    ) -> None:
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Application name must be a non-empty string")
        self.name = name.strip()
        self.harness = harness or default_harness
        self.config = config or self.harness.config
        self.testing = False
        self.router_location = "auto"
        self.test_helpers: dict[str, Callable[..., Any]] = {}
        self._readiness_deferrals = 0
        self._ready = False

    def __repr__(self) -> str:
        return f"<Application {self.name} testing={self.testing} ready={self._ready}>"

    @property
    def is_ready(self) -> bool:
        return self._ready

    def defer_readiness(self) -> None:
        self._readiness_deferrals += 1

    def advance_readiness(self) -> None:
        if self._readiness_deferrals <= 0:
            raise RuntimeError(f"advance_readiness called without a matching defer ({self.name})")
        self._readiness_deferrals -= 1
        if self._readiness_deferrals == 0:
            self._ready = True
            logger.debug("Application %s is ready", self.name)

    def run(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        return self.harness.run_loop.run(fn, *args, **kwargs)

    def setup_for_testing(self) -> None:
        """
        Put the application in test mode.

        Readiness is deferred so the test decides when the app boots, the router
        location is set to "none" so navigation never leaks between tests, and an
        adapter is installed from config if the harness has none yet.
        """

        self.testing = True
        self.defer_readiness()
        self.router_location = "none"
        self.harness.configure(self.config)

        if self.harness.adapter is None:
            self.harness.adapter = build_adapter(self.config.adapter_kind)

        if self.config.install_default_helpers:
            from acceptance.helpers import install_default_helpers

            install_default_helpers(self.harness)

        logger.info(
            "Application %s set up for testing (adapter=%s)",
            self.name,
            type(self.harness.adapter).__name__,
        )

    def inject_test_helpers(self, namespace: MutableMapping[str, Any] | None = None) -> None:
        self.harness.inject_helpers(self, namespace)

    def remove_test_helpers(self) -> None:
        self.harness.remove_helpers(self)
