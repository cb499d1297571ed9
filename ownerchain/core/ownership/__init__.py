from .behavior import ModelOwnership
from .declarations import load_declarations, parse_declarations
from .errors import (
    ConfigurationError,
    DataIntegrityError,
    InvalidArgumentError,
    OwnershipError,
    OwnershipRejected,
    UnknownModelError,
)
from .gate import OwnershipGate
from .models import OwnerFilter, OwnershipConfig, OwnershipDeclaration
from .provider import OwnerProvider
from .registry import OwnershipRegistry

__all__ = [
    "ConfigurationError",
    "DataIntegrityError",
    "InvalidArgumentError",
    "ModelOwnership",
    "OwnerFilter",
    "OwnerProvider",
    "OwnershipConfig",
    "OwnershipDeclaration",
    "OwnershipError",
    "OwnershipGate",
    "OwnershipRegistry",
    "OwnershipRejected",
    "UnknownModelError",
    "load_declarations",
    "parse_declarations",
]
