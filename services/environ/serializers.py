"""
Output serializers for the environ store. Each serializer takes the normalized key/value mapping of an Environ and renders it as text in one of the supported formats (JSON, YAML, TOML or dotenv), so the gathered secrets can be written to a file for tools that do not read them from the process environment.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import json
import re
from typing import Callable, Dict, List, Mapping

import tomli_w
import yaml

Serializer = Callable[[Mapping[str, str]], str]

_INTEGER_RE = re.compile(r"^-?\d+$")
_DOTENV_ESCAPES = {
    "\\": "\\\\",
    "\n": "\\n",
    "\r": "\\r",
    '"': '\\"',
    "!": "\\!",
    "$": "\\$",
    "`": "\\`",
}


def to_json(data: Mapping[str, str]) -> str:
    return json.dumps(dict(data), sort_keys=True)


def to_yaml(data: Mapping[str, str]) -> str:
    return yaml.safe_dump(dict(data), default_flow_style=False, sort_keys=True)


def to_toml(data: Mapping[str, str]) -> str:
    return tomli_w.dumps({k: data[k] for k in sorted(data)})


def _dotenv_quote(value: str) -> str:
    if _INTEGER_RE.match(value):
        return value
    return '"' + "".join(_DOTENV_ESCAPES.get(ch, ch) for ch in value) + '"'


def to_dotenv(data: Mapping[str, str]) -> str:
    lines = [f"{key}={_dotenv_quote(data[key])}" for key in sorted(data)]
    return "\n".join(lines)


SERIALIZERS: Dict[str, Serializer] = {
    "json": to_json,
    "yaml": to_yaml,
    "yml": to_yaml,
    "toml": to_toml,
    "env": to_dotenv,
    "dotenv": to_dotenv,
}


def marshallers() -> List[str]:
    return sorted(SERIALIZERS)


def get_serializer(name: str | None) -> Serializer:
    """Return the serializer registered for ``name``; unknown names get JSON."""
    return SERIALIZERS.get((name or "").strip().lower(), to_json)
