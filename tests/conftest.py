"""
Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import os
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT in sys.path:
    sys.path.remove(ROOT)
sys.path.insert(0, ROOT)

import pytest

from tests._env import ensure_test_env

ensure_test_env()


@pytest.fixture
def k8s_token_file(tmp_path):
    path = tmp_path / "serviceaccount" / "token"
    path.parent.mkdir()
    path.write_text("jwt")
    return str(path)


@pytest.fixture
def clean_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith(("VAULT_", "VEST_", "DOTENV_")):
            monkeypatch.delenv(name, raising=False)
    return monkeypatch
