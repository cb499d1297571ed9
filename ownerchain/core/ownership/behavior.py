from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Union

from sqlalchemy import inspect as sa_inspect
from sqlalchemy import select
from sqlalchemy.orm import Session

from .errors import DataIntegrityError
from .models import OwnerIdResult
from .paths import resolve_owner_path

if TYPE_CHECKING:
    from .registry import OwnershipRegistry


class ModelOwnership:
    """Ownership operations bound to one mapped model.

    Obtain through `OwnershipRegistry.for_model(Model)`.
    """

    def __init__(self, registry: "OwnershipRegistry", model: type):
        self.registry = registry
        self.model = model

    @property
    def config(self):
        return self.registry.get_config(self.model)

    def owner_path(self) -> Union[List[str], bool]:
        return resolve_owner_path(self.registry, self.model)

    def _ensure_entity(self, entity: Any) -> None:
        actual = sa_inspect(entity).mapper.class_
        if actual is not self.model:
            raise DataIntegrityError(
                f"Entity class does not match {self.model.__name__}. "
                f"({actual.__name__} entity was given.)"
            )

    def get_owner_id(self, session: Session, entity: Any) -> OwnerIdResult:
        """Owner id of `entity`: a dict, None (unowned) or False (not applicable)."""
        self._ensure_entity(entity)
        return self.registry.verifier.get_owner_id(session, entity)

    def is_owner_consistent(self, session: Session, entity: Any) -> bool:
        self._ensure_entity(entity)
        return self.registry.verifier.is_consistent(session, entity)

    def find_owned(self, stmt=None, owner_id: Any = None):
        """Restrict `stmt` to records owned by `owner_id` (or the current actor).

        Returns `stmt` unchanged when the model has no owner chain or there
        is neither an explicit owner id nor a current actor.
        """
        if stmt is None:
            stmt = select(self.model)
        return self.registry.filters.find_owned(stmt, self.model, owner_id)

    def find_non_owned(self, stmt=None):
        if stmt is None:
            stmt = select(self.model)
        return self.registry.filters.find_non_owned(stmt, self.model)
