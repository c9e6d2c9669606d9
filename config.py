"""
Configuration management for the entrypoint wrapper, loading settings from environment variables with support for defaults and type conversion. The ``Config`` class covers the process-level options: which secret providers to run and in what order, where and in which format to write the gathered environment, how to normalize key names, and the log level. Provider-specific settings (such as ``VAULT_*``) are parsed by each provider's factory only when that provider is selected.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import logging
import os
from typing import List, Optional

from services.environ.serializers import SERIALIZERS

logger = logging.getLogger(__name__)


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or not value.strip():
        return default
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _to_list(value: Optional[str], default: Optional[List[str]] = None) -> List[str]:
    if value is None:
        return default or []
    parsed = [item.strip() for item in value.split(",") if item.strip()]
    return parsed if parsed else (default or [])


class Config:
    def __init__(self) -> None:
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info")

        # Providers run concurrently; order only decides which are tried
        self.PROVIDERS: List[str] = _to_list(os.getenv("VEST_PROVIDERS"), default=["vault"])

        # Output
        output_file = (os.getenv("VEST_OUTPUT_FILE") or "").strip()
        self.OUTPUT_FILE: Optional[str] = os.path.expandvars(output_file) if output_file else None
        self.OUTPUT_FORMAT: str = (os.getenv("VEST_OUTPUT_FORMAT") or "json").strip().lower()
        self.UPCASE_KEYS: bool = _to_bool(os.getenv("VEST_UPCASE_KEYS"), default=True)
        self.INHERIT_ENV: bool = _to_bool(os.getenv("VEST_INHERIT_ENV"), default=True)

        self.validate()

    def validate(self) -> None:
        if self.OUTPUT_FORMAT not in SERIALIZERS:
            logger.warning(
                "Unknown VEST_OUTPUT_FORMAT '%s'; falling back to json. Allowed values: %s",
                self.OUTPUT_FORMAT,
                sorted(SERIALIZERS),
            )
            self.OUTPUT_FORMAT = "json"
        if not isinstance(getattr(logging, self.LOG_LEVEL.upper(), None), int):
            raise ValueError(f"Unsupported LOG_LEVEL '{self.LOG_LEVEL}'")


config = Config()
