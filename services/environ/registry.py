"""
Registry binding provider names to deferred factories. Nothing is constructed at registration time, so a provider whose configuration is missing only fails when it is actually requested.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List

from services.environ.errors import ProviderConstructionError, UnregisteredProviderError
from services.secrets.provider import ProviderFactory, SecretProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    def __init__(self) -> None:
        self._factories: Dict[str, ProviderFactory] = {}
        self._lock = threading.Lock()

    def register(self, name: str, factory: ProviderFactory) -> None:
        with self._lock:
            self._factories[name] = factory

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._factories)

    def get(self, name: str) -> SecretProvider:
        with self._lock:
            factory = self._factories.get(name)
        if factory is None:
            raise UnregisteredProviderError(name)
        logger.debug("Constructing provider %s", name)
        try:
            return factory()
        except Exception as exc:
            raise ProviderConstructionError(name, exc) from exc
