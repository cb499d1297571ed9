from __future__ import annotations

from typing import Optional


class OwnershipError(Exception):
    pass


class ConfigurationError(OwnershipError):
    """Invalid or incomplete ownership declaration.

    Raised at first use of a model; indicates a programming or deployment
    mistake and is never retried.
    """


class UnknownModelError(ConfigurationError):
    def __init__(self, name: str):
        super().__init__(f"No mapped model named '{name}'.")
        self.name = name


class DataIntegrityError(OwnershipError):
    pass


class InvalidArgumentError(OwnershipError):
    pass


class OwnershipRejected(OwnershipError):
    """A flush carried a record whose owner chain is inconsistent.

    The write did not happen. Use `is_owner_consistent` for a plain boolean.
    """

    def __init__(self, model: str, identity: Optional[tuple] = None):
        msg = f"Write rejected: {model} owner is inconsistent"
        if identity:
            msg += f" (identity={identity})"
        super().__init__(msg)
        self.model = model
        self.identity = identity
