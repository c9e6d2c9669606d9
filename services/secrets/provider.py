"""
Provider interface for secret sources, defining the single-method protocol every source implements to contribute the secrets it discovers into a shared Environ. A provider writes through ``Environ.safe_merge`` and reports failure by raising one of the ``services.environ.errors`` exceptions; the aggregator treats a failed provider as unavailable and carries on with the others. ``ProviderFactory`` is the deferred constructor stored in the provider registry.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable

from services.environ.store import Environ


@runtime_checkable
class SecretProvider(Protocol):
    def contribute(self, environ: Environ) -> None: ...


ProviderFactory = Callable[[], SecretProvider]
