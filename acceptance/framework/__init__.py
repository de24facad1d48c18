"""Testing framework built on `helperkit`: harness, application lifecycle, adapters."""

from acceptance.framework.adapter import Adapter, RecordingAdapter, build_adapter
from acceptance.framework.application import Application
from acceptance.framework.config import HarnessConfig
from acceptance.framework.errors import HelperNotFoundError, TransitionAborted, WaitTimeoutError
from acceptance.framework.testing import HelperHarness, harness

__all__ = [
    "Adapter",
    "Application",
    "HelperHarness",
    "HelperNotFoundError",
    "RecordingAdapter",
    "HarnessConfig",
    "TransitionAborted",
    "WaitTimeoutError",
    "build_adapter",
    "harness",
]
