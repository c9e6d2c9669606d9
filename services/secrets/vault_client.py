"""
Vault secret provider that resolves KV secrets and cloud credentials into an Environ. The provider authenticates once per lifetime (or uses a static token), then fans out one worker per configured KV key plus one each for AWS and GCP credential minting, and every worker safe-merges its result into the shared store. Key paths are rewritten for the KV version 2 read convention (a ``data`` segment after the mount); when the versioned read fails or comes back empty the provider retries once at the KV version 1 path, with that segment removed. A failure in one key or one cloud credential is logged and dropped without affecting the others. Transient backend errors (5xx, connection failures) are retried through tenacity up to ``VAULT_MAX_RETRIES`` extra attempts.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""


from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, TypeVar

import hvac
import requests
from hvac.exceptions import BadGateway, InternalServerError, InvalidPath, VaultDown, VaultError
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from models.vault import SENSITIVE_ENV_VARS, KVKey, VaultSettings
from services.environ.errors import EnvironError, ProviderConfigError, UnexpectedResponseError
from services.environ.store import Environ
from services.secrets import cloud_credentials
from services.secrets.errors import EmptyResponseError, InvalidKVKeyError, VaultClientError
from services.secrets.vault_auth import LoginPlan, plan_login

logger = logging.getLogger(__name__)

NAME = "vault"

T = TypeVar("T")

_TRANSIENT_ERRORS = (
    InternalServerError,
    BadGateway,
    VaultDown,
    requests.ConnectionError,
    requests.Timeout,
)


def kv_request_segments(path: str) -> Tuple[List[str], List[str]]:
    """Return ``(versioned, legacy)`` path segments for a KV key path."""
    segments = [segment for segment in path.split("/") if segment]
    if len(segments) < 2:
        raise InvalidKVKeyError(f"Invalid vault key path {path!r}")
    if segments[1] != "data":
        segments.insert(1, "data")
    return segments, segments[:1] + segments[2:]


def secret_map_from_data(data: Any) -> Dict[str, str]:
    if not isinstance(data, Mapping):
        raise UnexpectedResponseError(f"Unexpected vault response data type {type(data).__name__}")
    if data.get("metadata") is not None and data.get("data") is not None:
        data = data["data"]
        if not isinstance(data, Mapping):
            raise UnexpectedResponseError("Unexpected vault KV v2 response: data is not an object")
    return cloud_credentials.string_values(data)


def _response_data(response: Any) -> Any:
    if not isinstance(response, Mapping):
        return None
    return response.get("data")


class VaultProvider:
    def __init__(self, settings: VaultSettings, client: Any = None) -> None:
        if client is None and not settings.address:
            raise ProviderConfigError("VAULT_ADDR is required")

        self.settings = settings
        static_token = settings.secret_value("token")
        self._client = client if client is not None else hvac.Client(
            url=settings.address,
            token=static_token,
            timeout=settings.timeout,
            verify=settings.cacert or True,
        )
        self._login_plan: Optional[LoginPlan] = None
        if static_token:
            self._client.token = static_token
        else:
            self._login_plan = plan_login(settings)
        self._auth_lock = threading.Lock()
        self._authenticated = bool(static_token)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "VaultProvider":
        logger.debug("Creating vault api client. addr=%s", os.getenv("VAULT_ADDR"))
        try:
            settings = VaultSettings.from_env(environ)
        finally:
            if environ is None:
                for name in SENSITIVE_ENV_VARS:
                    os.environ.pop(name, None)
        logger.debug("Generated new vault client. settings=%r", settings)
        return cls(settings)

    @property
    def auth_method(self) -> Optional[str]:
        return self._login_plan.method if self._login_plan else None

    @property
    def auth_path(self) -> Optional[str]:
        return self._login_plan.path if self._login_plan else None

    def _with_retry(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        retrying = Retrying(
            retry=retry_if_exception_type(_TRANSIENT_ERRORS),
            stop=stop_after_attempt(self.settings.max_retries + 1),
            wait=wait_exponential(multiplier=0.1, max=1.0),
            reraise=True,
        )
        return retrying(fn, *args, **kwargs)

    def authenticate(self) -> None:
        with self._auth_lock:
            if self._authenticated:
                return
            plan = self._login_plan
            if plan is None:
                raise ProviderConfigError("Vault login is not configured")

            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("Requesting session token from vault. path=%s data=%s", plan.path, plan.describe())
            try:
                response = self._with_retry(
                    self._client.login, f"/v1/{plan.path}", use_token=False, json=plan.payload
                )
            except (VaultError, requests.RequestException) as exc:
                raise VaultClientError(f"vault login failed: {exc}") from exc

            auth = response.get("auth") if isinstance(response, Mapping) else None
            token = auth.get("client_token") if isinstance(auth, Mapping) else None
            if not isinstance(token, str) or not token.strip():
                raise EmptyResponseError("Vault login returned no client token")

            self._client.token = token
            self._authenticated = True

    def read(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        """GET ``/v1/<path>``; a missing path reads as ``None``."""
        try:
            return self._with_retry(self._client.adapter.get, f"/v1/{path}", params=params)
        except InvalidPath:
            return None
        except (VaultError, requests.RequestException) as exc:
            raise VaultClientError(f"vault read failed. path={path} err={exc}") from exc

    def _read_required(self, path: str) -> Any:
        data = _response_data(self.read(path))
        if data is None:
            raise EmptyResponseError(f"Vault returned no data. path={path}")
        return data

    def fetch_kv(self, key: KVKey) -> Dict[str, str]:
        versioned, legacy = kv_request_segments(key.path)
        versioned_path = "/".join(versioned)
        params = {"version": str(key.version)} if key.version is not None else None

        logger.debug("Fetching KVv2 secret from vault. key=%s params=%s", versioned_path, params)
        error: Optional[EnvironError] = None
        try:
            data = _response_data(self.read(versioned_path, params))
        except VaultClientError as exc:
            data, error = None, exc

        if data is None:
            legacy_path = "/".join(legacy)
            logger.debug(
                "Failed to get KVv2 secret from vault, trying KVv1. key=%s fallback=%s err=%s",
                versioned_path, legacy_path, error,
            )
            data = self._read_required(legacy_path)

        return secret_map_from_data(data)

    def fetch_aws_credentials(self) -> Dict[str, str]:
        path = cloud_credentials.aws_sts_path(self.settings.aws_path, self.settings.aws_role or "")
        logger.debug("Requesting aws credentials from vault. path=%s", path)
        return cloud_credentials.aws_credentials_from_response(self._read_required(path))

    def fetch_gcp_credentials(self) -> Dict[str, str]:
        path = cloud_credentials.gcp_credentials_path(
            self.settings.gcp_path, self.settings.gcp_cred_type, self.settings.gcp_role or ""
        )
        logger.debug("Requesting gcp credentials from vault. path=%s", path)
        return cloud_credentials.string_values(self._read_required(path))

    def _contribute_key(self, key: KVKey, environ: Environ) -> None:
        try:
            data = self.fetch_kv(key)
        except EnvironError as exc:
            logger.info("Failed to get data for key. key=%s err=%s", key, exc)
            return
        environ.safe_merge(data)

    def _contribute_aws(self, environ: Environ) -> None:
        cred_file = self.settings.aws_cred_file
        try:
            creds = self.fetch_aws_credentials()
            cloud_credentials.write_aws_shared_credentials(cred_file, self.settings.aws_profile, creds)
        except EnvironError as exc:
            logger.info("Failed to get aws credentials from vault. role=%s err=%s", self.settings.aws_role, exc)
            return
        except OSError as exc:
            logger.info("Failed to write aws shared credentials file. file=%s err=%s", cred_file, exc)
            return

        creds[cloud_credentials.AWS_SHARED_CREDENTIALS_FILE] = cred_file
        environ.safe_merge(creds)

    def _contribute_gcp(self, environ: Environ) -> None:
        cred_type = self.settings.gcp_cred_type
        cred_file = self.settings.gcp_cred_file
        try:
            creds = self.fetch_gcp_credentials()
            if cred_type == "token":
                token = creds.get("token")
                if not token:
                    raise EmptyResponseError("Vault GCP response has no token")
                environ.safe_merge({cloud_credentials.GOOGLE_OAUTH_ACCESS_TOKEN: token})
                return
            key_data = creds.get("private_key_data")
            if not key_data:
                raise EmptyResponseError("Vault GCP response has no private_key_data")
            cloud_credentials.write_gcp_key_file(cred_file, key_data)
        except EnvironError as exc:
            logger.info("Failed to get gcp credentials from vault. role=%s err=%s", self.settings.gcp_role, exc)
            return
        except OSError as exc:
            logger.info("Failed to write gcp credentials file. path=%s err=%s", cred_file, exc)
            return

        environ.safe_merge({cloud_credentials.GOOGLE_APPLICATION_CREDENTIALS: cred_file})

    def contribute(self, environ: Environ) -> None:
        for name in SENSITIVE_ENV_VARS:
            environ.delete(name)

        self.authenticate()

        tasks: List[Tuple[Callable[..., None], Tuple[Any, ...]]] = [
            (self._contribute_key, (key, environ)) for key in self.settings.keys
        ]
        if self.settings.aws_role:
            tasks.append((self._contribute_aws, (environ,)))
        if self.settings.gcp_role:
            tasks.append((self._contribute_gcp, (environ,)))
        if not tasks:
            return

        with ThreadPoolExecutor(max_workers=len(tasks), thread_name_prefix="vault") as pool:
            futures = [pool.submit(fn, *args) for fn, args in tasks]
            wait(futures)

        for future in futures:
            exc = future.exception()
            if exc is not None:
                logger.error("Vault task crashed", exc_info=exc)
