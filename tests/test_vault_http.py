"""
Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

import pytest

from tests._env import ensure_test_env

ensure_test_env()

from services.environ.store import Environ
from services.secrets.vault_client import VaultProvider
from tests._fake_vault import AUTH_TOKEN

ROUTES = {
    ("POST", "/v1/auth/approle/login"): (200, {"auth": {"client_token": AUTH_TOKEN}}),
    ("GET", "/v1/kv/data/foo/bar"): (404, {"errors": []}),
    ("GET", "/v1/kv/foo/bar"): (200, {"data": {"foo": "bar"}}),
    ("GET", "/v1/kv/data/app"): (200, {"data": {"data": {"k": "v3"}, "metadata": {"version": 3}}}),
}


class VaultHandler(BaseHTTPRequestHandler):
    def _reply(self, method):
        url = urlsplit(self.path)
        length = int(self.headers.get("Content-Length") or 0)
        body = json.loads(self.rfile.read(length)) if length else None
        self.server.calls.append((method, url.path, url.query, self.headers.get("X-Vault-Token"), body))

        status, payload = ROUTES.get((method, url.path), (404, {"errors": []}))
        data = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def do_GET(self):
        self._reply("GET")

    def do_POST(self):
        self._reply("POST")

    def log_message(self, format, *args):
        pass


@pytest.fixture
def vault_server(monkeypatch):
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("NO_PROXY", "127.0.0.1,localhost")

    server = ThreadingHTTPServer(("127.0.0.1", 0), VaultHandler)
    server.calls = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


def test_hvac_round_trip_against_http_server(vault_server, tmp_path):
    host, port = vault_server.server_address
    provider = VaultProvider.from_env(
        {
            "VAULT_ADDR": f"http://{host}:{port}",
            "VAULT_APP_ROLE": "role",
            "VAULT_APP_SECRET": "secret",
            "VAULT_KV_KEYS": "kv/foo/bar:kv/app@3",
            "VAULT_KUBERNETES_TOKEN_FILE": str(tmp_path / "missing-token"),
        }
    )
    environ = Environ()
    provider.contribute(environ)

    assert environ.map() == {"FOO": "bar", "K": "v3"}

    login, *reads = vault_server.calls
    assert login == ("POST", "/v1/auth/approle/login", "", None, {"role_id": "role", "secret_id": "secret"})
    assert sorted((method, path, query, token) for method, path, query, token, _ in reads) == [
        ("GET", "/v1/kv/data/app", "version=3", AUTH_TOKEN),
        ("GET", "/v1/kv/data/foo/bar", "", AUTH_TOKEN),
        ("GET", "/v1/kv/foo/bar", "", AUTH_TOKEN),
    ]
