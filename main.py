"""
Entrypoint for the secrets-injecting process wrapper.

Gathers secrets from the providers named in ``VEST_PROVIDERS`` into one Environ, optionally writes the result to ``VEST_OUTPUT_FILE``, folds in the ambient process environment without overriding gathered secrets, and replaces the current process with the target command.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Dict, List, Optional

from config import config
from services.environ import Environ, ProviderRegistry, marshallers, populate
from services.secrets import dotenv_provider, vault_client

__version__ = "1.0.0"

logger = logging.getLogger("vestibule")

USAGE = f"""Usage: vestibule command [args]
   eg: vestibule bash -c 'env'

  Environment Variables:

    VEST_PROVIDERS=vault,dotenv
      Comma separated secret providers to run. Default: vault

    VEST_OUTPUT_FILE=/path/to/file
      Also write the gathered environment to this file.

    VEST_OUTPUT_FORMAT={"|".join(marshallers())}
      Format of VEST_OUTPUT_FILE. Default: json

    VAULT_KV_KEYS=/path/to/key[@version]:...
      Vault KV keys to read. Secrets are read at the optional version or latest.
"""


def build_registry() -> ProviderRegistry:
    registry = ProviderRegistry()
    registry.register(vault_client.NAME, vault_client.VaultProvider.from_env)
    registry.register(dotenv_provider.NAME, dotenv_provider.DotenvProvider.from_env)
    return registry


def write_output(environ: Environ, path: str, fmt: str) -> bool:
    environ.set_marshaller(fmt)
    try:
        with open(path, "w") as f:
            environ.write(f)
    except OSError as exc:
        logger.warning("Failed to write output file. file=%s err=%s", path, exc)
        return False
    logger.info("Wrote environment. file=%s format=%s", path, fmt)
    return True


def gather(registry: Optional[ProviderRegistry] = None) -> Environ:
    environ = Environ(upcase_keys=config.UPCASE_KEYS)
    populate(environ, config.PROVIDERS, registry or build_registry())

    if config.OUTPUT_FILE:
        write_output(environ, config.OUTPUT_FILE, config.OUTPUT_FORMAT)

    if config.INHERIT_ENV:
        environ.safe_append(f"{k}={v}" for k, v in os.environ.items())
    return environ


def _as_env(environ: Environ) -> Dict[str, str]:
    return dict(item.split("=", 1) for item in environ.slice())


def main(argv: Optional[List[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if args and args[0] in ("--help", "-h", "-?"):
        print(USAGE)
        return 0
    if args and args[0] in ("--version", "-v"):
        print(__version__)
        return 0
    if not args:
        print(USAGE, file=sys.stderr)
        return 1

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    environ = gather()
    try:
        os.execvpe(args[0], args, _as_env(environ))
    except OSError as exc:
        logger.error("exec failed: %s", exc)
        return 127
    return 0


if __name__ == "__main__":
    sys.exit(main())
