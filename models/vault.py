"""
Pydantic models describing the Vault provider configuration: the KV keys to resolve and the authentication and cloud-credential settings read from ``VAULT_*`` environment variables. Field aliases are the environment variable names operators set, so ``VaultSettings.from_env`` can validate a filtered copy of the environment directly. Credential-bearing fields use ``SecretStr`` or are excluded from the repr so a logged settings object never carries them.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from services.environ.errors import ProviderConfigError
from services.secrets.errors import InvalidKVKeyError

KV_KEYS_SEPARATOR = ":"
KV_VERSION_SEPARATOR = "@"

KUBERNETES_TOKEN_FILE = "/var/run/secrets/kubernetes.io/serviceaccount/token"

# Variables that carry login material; purged from the process environment and the store.
SENSITIVE_ENV_VARS = (
    "VAULT_TOKEN",
    "VAULT_APP_ROLE",
    "VAULT_APP_SECRET",
    "VAULT_APP_JWT",
    "VAULT_AUTH_DATA",
)

_LEGACY_ALIASES = {
    "VAULT_KEYS": "VAULT_KV_KEYS",
    "VAULT_IAM_ROLE": "VAULT_AWS_ROLE",
}


class KVKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Backend-relative secret location")
    version: Optional[int] = Field(None, description="Secret version; latest when unset")

    @classmethod
    def parse(cls, raw: str) -> "KVKey":
        path, sep, version = raw.strip().partition(KV_VERSION_SEPARATOR)
        path = path.lstrip("/")
        # mount plus at least one secret segment
        if len([segment for segment in path.split("/") if segment]) < 2:
            raise InvalidKVKeyError(f"Invalid vault key {raw!r}")
        if not sep:
            return cls(path=path)
        try:
            return cls(path=path, version=int(version))
        except ValueError as exc:
            raise InvalidKVKeyError(f"Invalid version in vault key {raw!r}") from exc

    def __str__(self) -> str:
        if self.version is None:
            return self.path
        return f"{self.path}{KV_VERSION_SEPARATOR}{self.version}"


def parse_kv_keys(raw: str) -> List[KVKey]:
    return [KVKey.parse(item) for item in raw.split(KV_KEYS_SEPARATOR) if item.strip()]


class VaultSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    address: Optional[str] = Field(None, alias="VAULT_ADDR")
    token: Optional[SecretStr] = Field(None, alias="VAULT_TOKEN")
    cacert: Optional[str] = Field(None, alias="VAULT_CACERT")
    timeout: float = Field(3.0, gt=0, alias="VAULT_CLIENT_TIMEOUT")
    max_retries: int = Field(1, ge=0, alias="VAULT_MAX_RETRIES")

    keys: List[KVKey] = Field(default_factory=list, alias="VAULT_KV_KEYS")

    auth_method: Optional[str] = Field(None, alias="VAULT_AUTH_METHOD")
    auth_path: Optional[str] = Field(None, alias="VAULT_AUTH_PATH")
    auth_data: Optional[Dict[str, str]] = Field(None, alias="VAULT_AUTH_DATA", repr=False)
    app_role: Optional[str] = Field(None, alias="VAULT_APP_ROLE")
    app_secret: Optional[SecretStr] = Field(None, alias="VAULT_APP_SECRET")
    app_jwt: Optional[SecretStr] = Field(None, alias="VAULT_APP_JWT")
    best_effort_auth: bool = Field(False, alias="VAULT_AUTH_BEST_EFFORT")
    kubernetes_token_file: str = Field(KUBERNETES_TOKEN_FILE, alias="VAULT_KUBERNETES_TOKEN_FILE")

    aws_role: Optional[str] = Field(None, alias="VAULT_AWS_ROLE")
    aws_path: str = Field("aws", alias="VAULT_AWS_PATH")
    aws_profile: str = Field("default", alias="VAULT_AWS_PROFILE")
    aws_cred_file: str = Field("/var/aws/credentials", alias="AWS_SHARED_CREDENTIALS_FILE")

    gcp_role: Optional[str] = Field(None, alias="VAULT_GCP_ROLE")
    gcp_path: str = Field("gcp", alias="VAULT_GCP_PATH")
    gcp_cred_type: Literal["key", "token"] = Field("key", alias="VAULT_GCP_CRED_TYPE")
    gcp_cred_file: str = Field("/var/gcp/credentials.json", alias="GOOGLE_APPLICATION_CREDENTIALS")

    @field_validator("keys", mode="before")
    @classmethod
    def _parse_keys(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return parse_kv_keys(value)
            except InvalidKVKeyError as exc:
                raise ValueError(str(exc)) from exc
        return value

    @field_validator("auth_data", mode="before")
    @classmethod
    def _parse_auth_data(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError as exc:
            raise ValueError(f"failed to parse VAULT_AUTH_DATA: {exc}") from exc
        if not isinstance(parsed, dict) or not all(isinstance(v, str) for v in parsed.values()):
            raise ValueError("failed to parse VAULT_AUTH_DATA: expected a JSON object of strings")
        return parsed

    @field_validator("gcp_cred_type", mode="before")
    @classmethod
    def _lower_cred_type(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "VaultSettings":
        env = os.environ if environ is None else environ
        names = {field.alias for field in cls.model_fields.values() if field.alias}

        values: Dict[str, str] = {}
        for legacy, current in _LEGACY_ALIASES.items():
            raw = (env.get(legacy) or "").strip()
            if raw:
                values[current] = raw
        for name in names:
            raw = (env.get(name) or "").strip()
            if raw:
                values[name] = raw

        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise ProviderConfigError(f"Invalid vault configuration: {exc}") from exc

    def secret_value(self, field: str) -> Optional[str]:
        value = getattr(self, field)
        if value is None:
            return None
        text = value.get_secret_value().strip()
        return text or None
