from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List, Literal, Tuple, Union

from sqlalchemy import and_, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import RelationshipProperty, Session

from ownerchain.core.observability.metrics import record_lookup

from .errors import DataIntegrityError
from .models import OwnerId, OwnerIdResult
from .paths import path_joins, resolve_owner_path

if TYPE_CHECKING:
    from .registry import OwnershipRegistry

log = logging.getLogger("ownerchain.ownership")


def _modified(obj: Any) -> bool:
    return obj is not None and sa_inspect(obj).modified


def relation_state(entity: Any, key: str) -> Tuple[bool, Any, bool]:
    """(loaded, value, dirty) for a relationship attribute, without lazy loading.

    A loaded relation is dirty when it was reassigned, or when the record
    (or any record of a collection) it holds was edited in place.
    """
    state = sa_inspect(entity)
    loaded = key in state.dict
    value = state.dict.get(key)
    dirty = state.attrs[key].history.has_changes()
    if loaded and not dirty and value is not None:
        if state.mapper.relationships[key].uselist:
            dirty = any(_modified(child) for child in value)
        else:
            dirty = _modified(value)
    return loaded, value, dirty


class OwnerIdentityResolver:
    def __init__(self, registry: "OwnershipRegistry"):
        self.registry = registry

    def owner_primary_key(self, owner_model: type) -> List[str]:
        mapper = sa_inspect(owner_model)
        return [mapper.get_property_by_column(col).key for col in mapper.primary_key]

    def _owner_columns(self, owner: str, terminal: Any) -> List[Any]:
        owner_model = self.registry.model(owner)
        return [getattr(terminal, key).label(key) for key in self.owner_primary_key(owner_model)]

    def _foreign_key_values(self, entity: Any, rel: RelationshipProperty) -> List[Tuple[str, Any, Any]]:
        """(fk attribute, remote column, value) for each column pair of a to-one relation.

        A loaded, modified relationship wins over the foreign-key attributes:
        its related object's keys are what the flush will write.
        """
        source, target = rel.parent, rel.mapper
        loaded, related, dirty = relation_state(entity, rel.key)

        out = []
        for local, remote in rel.local_remote_pairs:
            fk_key = source.get_property_by_column(local).key
            if loaded and dirty:
                value = None if related is None else getattr(related, target.get_property_by_column(remote).key)
            else:
                value = getattr(entity, fk_key)
            out.append((fk_key, remote, value))
        return out

    def from_to_one(self, session: Session, entity: Any, rel: RelationshipProperty) -> OwnerIdResult:
        """Owner id reached through the to-one relation `rel` of `entity`.

        False when the relation is outside the entity's ownership group, None
        when the relation legitimately carries no foreign key (unowned).
        """
        config = self.registry.get_config(rel.parent.class_)
        if config.owner is None:
            return False

        target = rel.mapper.class_
        if target.__name__ == config.owner and rel.key == config.parent:
            path: List[str] = []
        else:
            path = resolve_owner_path(self.registry, target, config.owner)
            if not path:
                return False

        values = self._foreign_key_values(entity, rel)
        nulls = [fk for fk, _, value in values if value is None]
        if nulls:
            if len(nulls) < len(values):
                raise DataIntegrityError(
                    f"Foreign key({type(entity).__name__}.{nulls[0]}) must not be null, "
                    "or all foreign keys need to be set to null."
                )
            return None if rel.key == config.parent else False

        onclauses, terminal = path_joins(target, path)
        stmt = select(*self._owner_columns(config.owner, terminal)).select_from(target)
        for onclause in onclauses:
            stmt = stmt.join(onclause)
        stmt = stmt.where(*[remote == value for _, remote, value in values]).limit(1)

        record_lookup("to_one")
        with session.no_autoflush:
            row = session.execute(stmt).first()
        owner_id = dict(row._mapping) if row is not None else None
        log.debug("owner lookup model=%s rel=%s owner_id=%s", rel.parent.class_.__name__, rel.key, owner_id)
        return owner_id

    def from_to_many(
        self, session: Session, entity: Any, rel: RelationshipProperty
    ) -> Union[List[OwnerId], Literal[False]]:
        """Distinct owner ids of every record currently linked through `rel`."""
        if not sa_inspect(entity).has_identity:
            return False

        config = self.registry.get_config(rel.parent.class_)
        if config.owner is None:
            return False

        target = rel.mapper.class_
        path = resolve_owner_path(self.registry, target, config.owner)
        if not path:
            return False

        junction = rel.secondary
        conditions = []
        for src_col, junction_col in rel.synchronize_pairs:
            key = rel.parent.get_property_by_column(src_col).key
            value = getattr(entity, key)
            if value is None:
                raise DataIntegrityError(f"Binding key({type(entity).__name__}.{key}) must not be null.")
            conditions.append(junction_col == value)

        target_on = and_(*[junction_col == target_col for target_col, junction_col in rel.secondary_synchronize_pairs])
        onclauses, terminal = path_joins(target, path)
        stmt = select(*self._owner_columns(config.owner, terminal)).select_from(junction).join(target, target_on)
        for onclause in onclauses:
            stmt = stmt.join(onclause)
        stmt = stmt.where(*conditions).distinct()

        record_lookup("to_many")
        with session.no_autoflush:
            rows = session.execute(stmt).all()
        return [dict(r._mapping) for r in rows]
