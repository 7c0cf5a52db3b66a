import pytest

from propbridge.core.config import reset_settings
from propbridge.core.observability.metrics import reset_metrics

_ENV_KEYS = (
    "PROPBRIDGE_CONFIG_FILE",
    "PROPBRIDGE_UNSUPPORTED_SHAPES",
    "PROPBRIDGE_NAMESPACE_COLLISIONS",
    "PROPBRIDGE_DEDUPE_BASE_LABELS",
    "PROPBRIDGE_DEFAULT_WEIGHT",
)


@pytest.fixture(autouse=True)
def _isolate_runtime(monkeypatch):
    # Settings and counters are process-wide; keep tests from leaking into each other.
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    reset_settings()
    reset_metrics()
    yield
    reset_settings()
