import pytest

from hello_server import read_port


def test_default_when_unset():
    assert read_port("PORT", 8080) == 8080


def test_default_when_empty(monkeypatch):
    monkeypatch.setenv("PORT", "")
    assert read_port("PORT", 8080) == 8080


def test_optional_port_unset():
    assert read_port("METRICS_PORT") is None


def test_reads_integer(monkeypatch):
    monkeypatch.setenv("PORT", "9090")
    assert read_port("PORT", 8080) == 9090


@pytest.mark.parametrize("value", ["abc", "80.5", "-1", "65536"])
def test_rejects_invalid(monkeypatch, value):
    monkeypatch.setenv("PORT", value)
    with pytest.raises(ValueError, match="PORT"):
        read_port("PORT", 8080)
