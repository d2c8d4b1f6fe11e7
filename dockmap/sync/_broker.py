"""Dramatiq broker selection for the sync job.

The API process (when ``DOCKMAP_SYNC_BACKEND=dramatiq``) and the
``dramatiq dockmap.sync.actor`` workers must agree on one Redis broker,
named by ``DOCKMAP_BROKER_URL``. Without a URL only an in-memory stub is
acceptable, and only for tests or an explicit local opt-in.
"""

from __future__ import annotations

import os
import sys
import threading

import dramatiq
from dramatiq.brokers.stub import StubBroker

_REDIS_SCHEMES = ("redis://", "rediss://", "unix://")
_STUB_OPT_IN = "DOCKMAP_ALLOW_STUB_BROKER"

_lock = threading.Lock()
_configured_url: str | None = None


def _under_pytest() -> bool:
    return "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ


def _stub_allowed() -> bool:
    opt_in = os.environ.get(_STUB_OPT_IN, "").strip().lower()
    return opt_in in {"1", "true", "yes"} or _under_pytest()


def _build_broker(url: str) -> dramatiq.Broker:
    if not url:
        if not _stub_allowed():
            msg = (
                "DOCKMAP_BROKER_URL is required for Dramatiq syncs; set "
                f"{_STUB_OPT_IN}=1 to use an in-memory broker locally"
            )
            raise RuntimeError(msg)
        return StubBroker()
    if not url.startswith(_REDIS_SCHEMES):
        msg = f"DOCKMAP_BROKER_URL must be a redis:// URL, got scheme of {url!r}"
        raise ValueError(msg)
    from dramatiq.brokers.redis import RedisBroker

    return RedisBroker(url=url)


def ensure_broker_configured(broker_url: str | None = None) -> None:
    """Install the sync broker once per process.

    Parameters
    ----------
    broker_url
        Redis URL; defaults to ``DOCKMAP_BROKER_URL``. An empty value selects
        the stub broker where that is allowed.

    Raises
    ------
    RuntimeError
        If no URL is configured and a stub broker is not allowed.
    ValueError
        If the URL is not a Redis URL.

    """
    global _configured_url  # noqa: PLW0603

    url = (
        broker_url
        if broker_url is not None
        else os.environ.get("DOCKMAP_BROKER_URL", "")
    ).strip()
    if _configured_url is not None:
        return
    with _lock:
        if _configured_url is None:
            dramatiq.set_broker(_build_broker(url))
            _configured_url = url
