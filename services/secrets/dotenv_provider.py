"""
Provider reading plain dotenv files with python-dotenv. Files come from ``DOTENV_FILES`` (colon separated) or, when unset, every ``*.env`` file in the working directory.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import dotenv_values

from services.environ.errors import ProviderBackendError
from services.environ.store import Environ

logger = logging.getLogger(__name__)

NAME = "dotenv"
FILES_ENV_VAR = "DOTENV_FILES"


def find_dotenv_files(directory: Optional[str] = None) -> List[str]:
    root = Path(directory or os.getcwd())
    return sorted(
        str(p) for p in root.iterdir()
        if p.is_file() and (p.name == ".env" or p.suffix == ".env")
    )


class DotenvProvider:
    def __init__(self, files: List[str]) -> None:
        self.files = files

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DotenvProvider":
        env = os.environ if environ is None else environ
        raw = (env.get(FILES_ENV_VAR) or "").strip()
        if environ is None:
            os.environ.pop(FILES_ENV_VAR, None)
        files = [f.strip() for f in raw.split(":") if f.strip()] if raw else find_dotenv_files()
        return cls(files)

    def contribute(self, environ: Environ) -> None:
        environ.delete(FILES_ENV_VAR)
        for path in self.files:
            if not os.path.isfile(path):
                raise ProviderBackendError(f"dotenv file not found: {path}")
            values = {k: v for k, v in dotenv_values(path).items() if v is not None}
            logger.debug("Loaded dotenv file. path=%s keys=%d", path, len(values))
            environ.safe_merge(values)
