"""
Vault-specific refinements of the environ error taxonomy.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from services.environ.errors import ProviderBackendError, ProviderConfigError, UnexpectedResponseError


class VaultClientError(ProviderBackendError):
    pass


class EmptyResponseError(UnexpectedResponseError):
    def __init__(self, message: str = "Vault returned an empty response") -> None:
        super().__init__(message)


class InvalidKVKeyError(ProviderConfigError):
    pass
