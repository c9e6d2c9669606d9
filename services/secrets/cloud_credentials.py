"""
Helpers for persisting cloud credentials minted by Vault. AWS STS credentials are merged into an INI shared-credentials file under a named profile, keeping any other profiles already in the file. GCP service-account keys arrive base64-encoded and are decoded and written verbatim. Both files are written with mode 0600 through a temporary file in the target directory followed by a rename, so a failed write never leaves a half-written credentials file behind.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import base64
import binascii
import configparser
import io
import logging
import os
import tempfile
from typing import Any, Dict, Mapping

from services.environ.errors import UnexpectedResponseError
from services.secrets.errors import EmptyResponseError

logger = logging.getLogger(__name__)

AWS_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
AWS_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
AWS_SESSION_TOKEN = "AWS_SESSION_TOKEN"
AWS_SHARED_CREDENTIALS_FILE = "AWS_SHARED_CREDENTIALS_FILE"

GOOGLE_OAUTH_ACCESS_TOKEN = "GOOGLE_OAUTH_ACCESS_TOKEN"
GOOGLE_APPLICATION_CREDENTIALS = "GOOGLE_APPLICATION_CREDENTIALS"

CREDENTIAL_FILE_MODE = 0o600
CREDENTIAL_DIR_MODE = 0o755


def _join_mount(mount: str, *parts: str) -> str:
    return "/".join([mount.strip().strip("/"), *(p.strip() for p in parts)])


def aws_sts_path(mount: str, role: str) -> str:
    return _join_mount(mount, "sts", role)


def gcp_credentials_path(mount: str, cred_type: str, role: str) -> str:
    return _join_mount(mount, cred_type, role)


def string_values(data: Mapping[str, Any]) -> Dict[str, str]:
    return {k: v for k, v in data.items() if isinstance(v, str)}


def aws_credentials_from_response(data: Mapping[str, Any]) -> Dict[str, str]:
    values = string_values(data)
    if not values.get("access_key") or not values.get("secret_key"):
        raise EmptyResponseError("Vault AWS response is missing access_key or secret_key")
    creds = {
        AWS_ACCESS_KEY_ID: values["access_key"],
        AWS_SECRET_ACCESS_KEY: values["secret_key"],
    }
    if values.get("security_token"):
        creds[AWS_SESSION_TOKEN] = values["security_token"]
    return creds


def atomic_write(path: str, content: bytes, mode: int = CREDENTIAL_FILE_MODE) -> None:
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, mode=CREDENTIAL_DIR_MODE, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-", suffix=os.path.basename(path))
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(content)
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def write_aws_shared_credentials(path: str, profile: str, credentials: Mapping[str, str]) -> None:
    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read(path)
    except configparser.Error as exc:
        logger.info("Existing aws credentials file is unreadable; replacing it. file=%s err=%s", path, exc)
        parser = configparser.ConfigParser(interpolation=None)

    section = {
        AWS_ACCESS_KEY_ID.lower(): credentials[AWS_ACCESS_KEY_ID],
        AWS_SECRET_ACCESS_KEY.lower(): credentials[AWS_SECRET_ACCESS_KEY],
    }
    if credentials.get(AWS_SESSION_TOKEN):
        section[AWS_SESSION_TOKEN.lower()] = credentials[AWS_SESSION_TOKEN]
    parser[profile] = section

    buf = io.StringIO()
    parser.write(buf)
    atomic_write(path, buf.getvalue().encode("utf-8"))


def write_gcp_key_file(path: str, encoded: str) -> None:
    try:
        content = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise UnexpectedResponseError(f"Vault GCP key is not valid base64: {exc}") from exc
    atomic_write(path, content)
