from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

from .errors import DataIntegrityError, InvalidArgumentError
from .models import OwnerFilter
from .paths import resolve_owner_path

if TYPE_CHECKING:
    from .registry import OwnershipRegistry


class OwnerFilterBuilder:
    """Builds join-path + predicate descriptors for owner-scoped queries.

    `owned()` inner-joins to the owner and matches its primary key;
    `non_owned()` left-joins and keeps rows whose owner chain resolves to
    nothing. Both return None (no-op) for models outside any ownership chain.
    """

    def __init__(self, registry: "OwnershipRegistry"):
        self.registry = registry

    def owned(self, model: type, owner_id: Any = None) -> Optional[OwnerFilter]:
        path = resolve_owner_path(self.registry, model)
        if path is False:
            return None

        owner_model = self.registry.model(self.registry.get_config(model).owner)
        primary_key = self.registry.identity.owner_primary_key(owner_model)

        if owner_id is not None:
            values = self._normalize_owner_id(owner_id, primary_key)
        else:
            current = owner_model.get_current_entity()
            if current is None:
                return None
            values = []
            for key in primary_key:
                value = getattr(current, key)
                if value is None:
                    raise DataIntegrityError(f"Primary key of current entity({key}) must not be null.")
                values.append(value)

        if len(values) != len(primary_key):
            raise InvalidArgumentError(
                f"Primary key must be same length. (owner_id length must be {len(primary_key)})"
            )

        return OwnerFilter(
            model=model,
            path=tuple(path),
            conditions=tuple(zip(primary_key, values)),
        )

    def non_owned(self, model: type) -> Optional[OwnerFilter]:
        path = resolve_owner_path(self.registry, model)
        if path is False:
            return None

        owner_model = self.registry.model(self.registry.get_config(model).owner)
        primary_key = self.registry.identity.owner_primary_key(owner_model)
        return OwnerFilter(
            model=model,
            path=tuple(path),
            conditions=tuple((key, None) for key in primary_key),
            outer=True,
        )

    def find_owned(self, stmt, model: type, owner_id: Any = None):
        f = self.owned(model, owner_id)
        return stmt if f is None else f.apply(stmt)

    def find_non_owned(self, stmt, model: type):
        f = self.non_owned(model)
        return stmt if f is None else f.apply(stmt)

    @staticmethod
    def _normalize_owner_id(owner_id: Any, primary_key: Sequence[str]) -> List[Any]:
        if isinstance(owner_id, Mapping):
            if set(owner_id) != set(primary_key):
                raise InvalidArgumentError(
                    f"owner_id keys {sorted(owner_id)} do not match owner primary key {list(primary_key)}."
                )
            return [owner_id[key] for key in primary_key]
        if isinstance(owner_id, (list, tuple)):
            return list(owner_id)
        return [owner_id]
