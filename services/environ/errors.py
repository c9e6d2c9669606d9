"""
Error types shared by the environ store, the provider registry and the secret providers. Callers decide severity by exception class rather than by inspecting messages: configuration errors stop a provider from being built, backend and unexpected-response errors only drop that provider's contribution.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations


class EnvironError(RuntimeError):
    pass


class ProviderConfigError(EnvironError):
    pass


class ProviderBackendError(EnvironError):
    pass


class UnexpectedResponseError(EnvironError):
    pass


class UnregisteredProviderError(EnvironError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unregistered provider {name}")
        self.name = name


class ProviderConstructionError(EnvironError):
    def __init__(self, name: str, cause: BaseException) -> None:
        super().__init__(f"Failed to construct provider {name}: {cause}")
        self.name = name
        self.cause = cause
