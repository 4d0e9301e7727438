"""Server launcher tests"""

from unittest.mock import patch

import entrypoint
from constants import SHUTDOWN_FLUSH_TIMEOUT, WS_PING_INTERVAL, WS_PING_TIMEOUT


class TestMain:
    def test_runs_app_with_keepalive(self, monkeypatch):
        monkeypatch.setenv("HOST", "127.0.0.1")
        monkeypatch.setenv("PORT", "9001")
        monkeypatch.delenv("RELOAD", raising=False)

        with patch("entrypoint.uvicorn.run") as run:
            entrypoint.main()

        run.assert_called_once()
        args, kwargs = run.call_args
        assert args == ("app:app",)
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 9001
        assert kwargs["reload"] is False
        assert kwargs["ws_ping_interval"] == WS_PING_INTERVAL
        assert kwargs["ws_ping_timeout"] == WS_PING_TIMEOUT
        assert kwargs["timeout_graceful_shutdown"] > SHUTDOWN_FLUSH_TIMEOUT

    def test_reload_toggle(self, monkeypatch):
        monkeypatch.setenv("RELOAD", "true")

        with patch("entrypoint.uvicorn.run") as run:
            entrypoint.main()

        assert run.call_args.kwargs["reload"] is True
