"""
Aggregator that runs the configured secret providers concurrently against one Environ. Providers are resolved through the registry in the order given; unknown names and providers that fail to construct are logged and skipped. Each resolved provider runs on its own worker thread and commits its findings directly into the shared store, and the call returns only after every provider has finished or failed. One provider failing never stops the others from contributing.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import List, Sequence, Tuple

from services.environ.errors import EnvironError
from services.environ.registry import ProviderRegistry
from services.environ.store import Environ
from services.secrets.provider import SecretProvider

logger = logging.getLogger(__name__)


def _run_provider(name: str, provider: SecretProvider, environ: Environ) -> bool:
    try:
        provider.contribute(environ)
    except EnvironError as exc:
        logger.info("Failed to add secrets to environ. provider=%s msg=%s", name, exc)
        return False
    except Exception:
        logger.exception("Provider crashed while adding secrets. provider=%s", name)
        return False
    logger.debug("Provider finished. provider=%s", name)
    return True


def populate(environ: Environ, names: Sequence[str], registry: ProviderRegistry) -> List[str]:
    """Run every named provider against ``environ``; return the names that succeeded."""
    resolved: List[Tuple[str, SecretProvider]] = []
    for name in names:
        try:
            resolved.append((name, registry.get(name)))
        except EnvironError as exc:
            logger.info("Skipping provider: %s", exc)

    if not resolved:
        return []

    with ThreadPoolExecutor(max_workers=len(resolved), thread_name_prefix="provider") as pool:
        futures = {pool.submit(_run_provider, name, provider, environ): name for name, provider in resolved}
        wait(futures)

    return [futures[f] for f in futures if f.result()]
