"""Pytest configuration for test isolation.

The CLI loads ``./.env`` and configures logging once per process. To keep
tests hermetic, each test runs in its own temporary working directory with the
package's environment variables cleared, and logging is reset afterwards so a
handler bound to a closed capture stream never leaks into the next test.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from transaction_ingest.logging_setup import reset_logging


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("TRANSACTION_INGEST_LOG_LEVEL", raising=False)
    monkeypatch.delenv("TRANSACTION_INGEST_ID_NAMESPACE", raising=False)
    yield
    reset_logging()
