"""
Vault login resolution. Works out which auth method applies from the configured settings, the login path for that method and the payload to submit, then exchanges the payload for a session token. A static ``VAULT_TOKEN`` skips all of this. Otherwise the payload is chosen by precedence: app role with secret (approle), app role with JWT (jwt), an explicit ``VAULT_AUTH_DATA`` object, and finally the Kubernetes service-account token mounted in the pod.

Payloads are only ever logged after ``redact`` has masked the credential fields.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from models.vault import VaultSettings
from services.environ.errors import ProviderConfigError

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"
SENSITIVE_FIELDS = frozenset(
    {"jwt", "secret_id", "role_id", "password", "identity", "signature", "pkcs7", "token"}
)


def redact(payload: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: (REDACTED if k in SENSITIVE_FIELDS else v) for k, v in payload.items()}


@dataclass(frozen=True)
class LoginPlan:
    method: str
    path: str
    payload: Dict[str, Any] = field(repr=False)

    def describe(self) -> str:
        return json.dumps(redact(self.payload), sort_keys=True)


def resolve_auth_method(settings: VaultSettings) -> str:
    if settings.auth_method and settings.auth_method.strip():
        return settings.auth_method.strip()
    if settings.app_role and settings.secret_value("app_secret"):
        return "approle"
    if settings.app_role and settings.secret_value("app_jwt"):
        return "jwt"
    return "kubernetes"


def resolve_login_path(auth_path: Optional[str], method: str) -> Tuple[str, str]:
    """Return ``(method, path)``; an explicit path names the method by its second segment."""
    if not auth_path or not auth_path.strip():
        return method, f"auth/{method}/login"

    parts = [p.strip() for p in auth_path.split("/") if p.strip()]
    if not parts or parts[0] != "auth":
        parts.insert(0, "auth")
    if len(parts) == 1:
        parts.append(method)
    if len(parts) == 2:
        parts.append("login")
    return parts[1], "/".join(parts)


def _read_kubernetes_token(path: str) -> Optional[str]:
    try:
        with open(path) as f:
            token = f.read().strip()
    except OSError as exc:
        logger.debug("Kubernetes service account token unavailable. path=%s err=%s", path, exc)
        return None
    return token or None


def build_login_payload(settings: VaultSettings) -> Dict[str, Any]:
    app_secret = settings.secret_value("app_secret")
    app_jwt = settings.secret_value("app_jwt")

    if settings.app_role and app_secret:
        return {"role_id": settings.app_role, "secret_id": app_secret}
    if settings.app_role and app_jwt:
        return {"role": settings.app_role, "jwt": app_jwt}
    if settings.auth_data is not None:
        return dict(settings.auth_data)

    token = _read_kubernetes_token(settings.kubernetes_token_file)
    if token:
        return {"role": settings.app_role or "", "jwt": token}
    if settings.best_effort_auth:
        logger.info("No usable vault credentials; attempting approle login with role_id only")
        return {"role_id": settings.app_role or ""}
    raise ProviderConfigError(
        f"No vault credentials configured and no service account token at {settings.kubernetes_token_file}"
    )


def plan_login(settings: VaultSettings) -> LoginPlan:
    method, path = resolve_login_path(settings.auth_path, resolve_auth_method(settings))
    plan = LoginPlan(method=method, path=path, payload=build_login_payload(settings))
    logger.debug("Resolved vault login. method=%s path=%s", plan.method, plan.path)
    return plan
