from services.environ.errors import (
    EnvironError,
    ProviderBackendError,
    ProviderConfigError,
    ProviderConstructionError,
    UnexpectedResponseError,
    UnregisteredProviderError,
)
from services.environ.populate import populate
from services.environ.registry import ProviderRegistry
from services.environ.serializers import marshallers
from services.environ.store import Environ

__all__ = [
    "Environ",
    "EnvironError",
    "ProviderBackendError",
    "ProviderConfigError",
    "ProviderConstructionError",
    "ProviderRegistry",
    "UnexpectedResponseError",
    "UnregisteredProviderError",
    "marshallers",
    "populate",
]
