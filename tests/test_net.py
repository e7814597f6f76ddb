from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest

from rocketgraph_installer.lib import net
from rocketgraph_installer.lib.net import FetchError, fetch_text


def _client(handler):
    return lambda *, timeout: httpx.Client(transport=httpx.MockTransport(handler), timeout=timeout)


class TestFetchText:
    def test_returns_body(self):
        def handler(request):
            assert request.url.path == "/env.template"
            return httpx.Response(200, text="MC_PORT=80\n")

        with patch.object(net, "build_client", _client(handler)):
            assert fetch_text("https://install.rocketgraph.ai/env.template") == "MC_PORT=80\n"

    def test_http_error_status(self):
        with patch.object(net, "build_client", _client(lambda request: httpx.Response(404))):
            with pytest.raises(FetchError, match="HTTP 404"):
                fetch_text("https://install.rocketgraph.ai/env.template")

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with patch.object(net, "build_client", _client(handler)):
            with pytest.raises(FetchError, match="connection refused"):
                fetch_text("https://install.rocketgraph.ai/docker-compose.yml")

    def test_client_defaults(self):
        with net.build_client(timeout=5.0) as client:
            assert client.follow_redirects
            assert client.timeout.read == 5.0
