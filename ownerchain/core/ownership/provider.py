from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, Optional


class OwnerProvider:
    """Capability mixin for models that act as owners (accounts, tenants, users).

    Each owner class gets its own context-scoped "current actor", used as the
    default owner by `find_owned` when no explicit owner id is given.

        class Account(OwnerProvider, Base):
            __tablename__ = "accounts"
            ...

        with Account.acting_as(account):
            stmt = registry.for_model(Item).find_owned()
    """

    def __init_subclass__(cls, **kw: Any) -> None:
        super().__init_subclass__(**kw)
        cls._current_entity = ContextVar(f"ownerchain_current_{cls.__name__}", default=None)

    @classmethod
    def get_current_entity(cls) -> Optional[Any]:
        return cls._current_entity.get()

    @classmethod
    def set_current_entity(cls, entity: Optional[Any]) -> None:
        cls._current_entity.set(entity)

    @classmethod
    @contextmanager
    def acting_as(cls, entity: Optional[Any]) -> Iterator[Optional[Any]]:
        token = cls._current_entity.set(entity)
        try:
            yield entity
        finally:
            cls._current_entity.reset(token)


def is_owner_provider(model: Any) -> bool:
    return isinstance(model, type) and issubclass(model, OwnerProvider)
