"""Tests for pairwire.cli: argument handling, no network."""

import io
import json
import sys
import types

import pytest

from pairwire import cli


@pytest.fixture
def fake_uvicorn(monkeypatch):
    calls = []
    mod = types.ModuleType("uvicorn")
    mod.run = lambda app, **kwargs: calls.append((app, kwargs))
    monkeypatch.setitem(sys.modules, "uvicorn", mod)
    return calls


class TestServe:
    def test_flags_override_config(self, tmp_path, fake_uvicorn):
        config = tmp_path / "config.toml"
        config.write_text('[server]\nport = 9000\nhost = "127.0.0.1"\n')

        with pytest.raises(SystemExit) as exc:
            cli.main([
                "--config", str(config),
                "serve", "--port", "4000", "--cors-origin", "https://a.example",
                "--cors-origin", "https://b.example", "--outbox-limit", "8",
            ])
        assert exc.value.code == 0

        [(app, kwargs)] = fake_uvicorn
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 4000
        cfg = app.state.config
        assert cfg.cors_origins == ("https://a.example", "https://b.example")
        assert cfg.outbox_limit == 8

    def test_defaults_without_config(self, tmp_path, fake_uvicorn):
        with pytest.raises(SystemExit):
            cli.main(["--config", str(tmp_path / "missing.toml"), "serve"])
        [(_, kwargs)] = fake_uvicorn
        assert kwargs["port"] == 3000
        assert kwargs["host"] == "0.0.0.0"


class TestStatus:
    def _fake_urlopen(self, monkeypatch, payload, seen):
        import urllib.request

        class _Resp(io.BytesIO):
            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return False

        def fake(url, timeout=None):
            seen.append(url)
            return _Resp(json.dumps(payload).encode())

        monkeypatch.setattr(urllib.request, "urlopen", fake)

    def test_status_ok(self, tmp_path, monkeypatch, capsys):
        seen = []
        self._fake_urlopen(monkeypatch, {
            "status": "ok", "connections": 3, "waiting": 1, "rooms": 1,
            "invariant_violations": [],
        }, seen)

        with pytest.raises(SystemExit) as exc:
            cli.main(["--config", str(tmp_path / "none.toml"), "status", "--server", "ws://relay.example:3000/ws"])
        assert exc.value.code == 0
        assert seen == ["http://relay.example:3000/health"]
        out = capsys.readouterr().out
        assert "Connections: 3" in out
        assert "Rooms:       1" in out

    def test_status_degraded_exit_code(self, tmp_path, monkeypatch):
        self._fake_urlopen(monkeypatch, {
            "status": "degraded", "connections": 2, "waiting": 1, "rooms": 1,
            "invariant_violations": ["x is in room_x_y and waiting queue"],
        }, [])
        with pytest.raises(SystemExit) as exc:
            cli.main(["--config", str(tmp_path / "none.toml"), "status", "--server", "https://relay.example"])
        assert exc.value.code == 1
