"""
Tests for the service entrypoint.
"""

from __future__ import annotations

import json
import os
from unittest.mock import patch


class TestMain:
    def test_configuration_error_exits_nonzero(self, capsys):
        """Test a relational mode without PG_URL stops startup."""
        from app.main import main

        with patch.dict(os.environ, {"STORAGE_MODE": "cockroach"}, clear=True):
            with patch("uvicorn.run") as run:
                assert main() == 1

        run.assert_not_called()
        events = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        failed = [e for e in events if e["event"] == "startup_failed"]
        assert failed[0]["data"]["error"]["code"] == "CONFIG_101"

    def test_invalid_port_exits_nonzero(self):
        from app.main import main

        with patch.dict(os.environ, {"PORT": "0"}, clear=True):
            with patch("uvicorn.run") as run:
                assert main() == 1

        run.assert_not_called()

    def test_serves_configured_port(self, capsys):
        from app.main import main

        with patch.dict(os.environ, {"PORT": "9101", "HOST": "127.0.0.1", "PG_URL": "postgresql://a:pw@db/c"}, clear=True):
            with patch("uvicorn.run") as run:
                assert main() == 0

        assert run.call_args.kwargs["port"] == 9101
        assert run.call_args.kwargs["host"] == "127.0.0.1"
        out = capsys.readouterr().out
        assert "server_started" in out
        assert "pw@" not in out

    def test_malformed_dns_server_exits_nonzero(self, capsys):
        from app.main import main

        with patch.dict(os.environ, {"DNS_SERVER": "consul:abc"}, clear=True):
            with patch("uvicorn.run") as run:
                assert main() == 1

        run.assert_not_called()
        events = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        failed = [e for e in events if e["event"] == "startup_failed"]
        assert failed[0]["data"]["error"]["code"] == "CONFIG_102"
        assert failed[0]["data"]["error"]["data"]["config_name"] == "DNS_SERVER"
