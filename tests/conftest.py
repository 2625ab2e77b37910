"""
Pytest configuration and shared fixtures for harness tests

Nothing here talks to a real network: HTTP goes through httpx.MockTransport
and the poller runs on a fake clock, so convergence tests take no wall time.
"""

import logging

import pytest
from fakes import FakeClock, FakeFtgoBackend

from sagaverify import HarnessConfig, HTTPProbe, RetryPoller
from sagaverify.core.logger import set_logger

# ============================================
# AUTO-USE FIXTURES
# ============================================


@pytest.fixture(autouse=True)
def reset_custom_logger():
    """Make sure a test that installs a custom logger does not leak it."""
    yield
    set_logger(None)


@pytest.fixture(autouse=True, scope="session")
def quiet_httpx():
    """httpx logs every request at INFO; keep test output readable."""
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ============================================
# HARNESS FIXTURES
# ============================================


@pytest.fixture
def config() -> HarnessConfig:
    return HarnessConfig(host="ftgo.test", port=8081, default_max_wait=5.0, default_interval=0.1)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def poller(config, clock) -> RetryPoller:
    """Poller using the fake clock: sleeping advances time instantly."""
    return RetryPoller(
        config.default_max_wait, config.default_interval, sleep=clock.sleep, clock=clock.now
    )


@pytest.fixture
def backend() -> FakeFtgoBackend:
    return FakeFtgoBackend(lag=2)


@pytest.fixture
def probe(config, backend) -> HTTPProbe:
    """Probe wired to the in-memory FTGO backend."""
    return HTTPProbe(config, client=backend.client())
