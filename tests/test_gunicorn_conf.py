"""
Tests for the gunicorn configuration file.
"""
import runpy
from pathlib import Path

CONF = Path(__file__).resolve().parents[1] / "gunicorn.conf.py"


def test_defaults(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("WORKERS", raising=False)
    conf = runpy.run_path(str(CONF))
    assert conf["bind"] == "0.0.0.0:8000"
    assert conf["workers"] == 1
    assert conf["worker_class"] == "uvicorn.workers.UvicornWorker"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("PORT", "9100")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    conf = runpy.run_path(str(CONF))
    assert conf["bind"] == "0.0.0.0:9100"
    assert conf["loglevel"] == "debug"


def test_docstring_lists_only_used_env_vars():
    doc = runpy.run_path(str(CONF))["__doc__"]
    for var in ("PORT", "WORKERS"):
        assert var in doc
    assert "sets this automatically" not in doc
