# conftest.py
from __future__ import annotations

import os
import uuid

import pytest

from topokit.core.config import TopologyConfig
from topokit.core.log import (
    bind_context,
    configure_from_env,
    enable_stdout_logging,
    get_logger,
    log_context,
)
from topokit.graph.topology import Topology
from tests.helpers import RecordingTransport


def pytest_addoption(parser):
    parser.addoption(
        "--log-json",
        action="store_true",
        default=False,
        help="Emit topokit logs in JSON format during tests",
    )


@pytest.fixture(scope="session", autouse=True)
def _configure_topokit_logging(request):
    configure_from_env()
    prefer_json = request.config.getoption("--log-json")
    # Unless enabled via env, attach a human-readable handler
    if os.getenv("TOPOKIT_LOG_STDOUT", "").lower() not in ("1", "true", "yes", "on"):
        enable_stdout_logging(
            level="DEBUG",
            json_output=prefer_json,
            pretty=not prefer_json,
            route_errors_to_stderr=True,
        )
    bind_context(role="pytest")


@pytest.fixture(scope="session")
def session_run_id():
    return uuid.uuid4().hex[:8]


@pytest.fixture(autouse=True)
def _test_log_context(request, session_run_id):
    log = get_logger("test")
    with log_context(pytest_nodeid=request.node.nodeid, test=request.node.name, test_run=session_run_id):
        log.debug("pytest.test.start", event="pytest.test.start")
        yield


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    rep = outcome.get_result()
    if rep.when == "call":
        log = get_logger("test")
        with log_context(pytest_nodeid=item.nodeid, test=item.name):
            log.debug(
                "pytest.test.finish",
                event="pytest.test.finish",
                outcome=rep.outcome,
                duration=getattr(rep, "duration", None),
            )


@pytest.fixture
def tlog():
    return get_logger("test")


@pytest.fixture
def topology():
    return Topology("orders", config=TopologyConfig())


@pytest.fixture
def transport():
    return RecordingTransport()
