"""
Pytest configuration and fixtures for the hello server tests.
"""

import threading

import pytest

import hello_server


@pytest.fixture(autouse=True)
def set_test_env(monkeypatch):
    """Keep tests independent of whatever the shell exports."""
    for name in ("PORT", "HOST", "METRICS_PORT", "PROBE_URL"):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def client():
    hello_server.app.config["TESTING"] = True
    with hello_server.app.test_client() as client:
        yield client


@pytest.fixture
def live_server():
    """A real threaded server on an ephemeral localhost port."""
    server = hello_server.create_server("127.0.0.1", 0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
    thread.join(timeout=5)


@pytest.fixture
def base_url(live_server):
    return f"http://127.0.0.1:{live_server.port}"
