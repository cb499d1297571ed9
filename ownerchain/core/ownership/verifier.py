from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional, Set

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session
from sqlalchemy.orm.interfaces import MANYTOMANY, MANYTOONE

from .identity import OwnerIdentityResolver, relation_state
from .models import OwnerIdResult
from .paths import get_relationship, resolve_owner_path

if TYPE_CHECKING:
    from .registry import OwnershipRegistry

log = logging.getLogger("ownerchain.ownership")


class ConsistencyVerifier:
    """Checks that a record graph resolves to a single owner.

    Loaded relations that were modified in memory are followed into the
    nested records, so not-yet-flushed edits are judged by what is about to
    be written. Untouched relations are checked with a lookup against the
    stored state.
    """

    def __init__(self, registry: "OwnershipRegistry", resolver: OwnerIdentityResolver):
        self.registry = registry
        self.resolver = resolver

    def get_owner_id(self, session: Session, entity: Any) -> OwnerIdResult:
        model = sa_inspect(entity).mapper.class_
        path = resolve_owner_path(self.registry, model)
        if path is False:
            return False

        with session.no_autoflush:
            hops = list(path)
            while True:
                rel = get_relationship(model, hops.pop(0))
                loaded, nested, dirty = relation_state(entity, rel.key)
                if nested is not None and loaded and dirty and hops:
                    entity = nested
                    model = rel.mapper.class_
                    continue
                return self.resolver.from_to_one(session, entity, rel)

    def is_consistent(self, session: Session, entity: Any) -> bool:
        owner_id = self.get_owner_id(session, entity)
        if owner_id is False:
            return True
        with session.no_autoflush:
            return self._is_consistent(session, entity, owner_id, set())

    def _is_consistent(
        self,
        session: Session,
        entity: Any,
        owner_id: Optional[dict],
        visited: Set[int],
    ) -> bool:
        if id(entity) in visited:
            return True
        visited.add(id(entity))

        mapper = sa_inspect(entity).mapper
        model = mapper.class_
        config = self.registry.get_config(model)
        if config.owner is None:
            return True

        for rel in mapper.relationships:
            target = rel.mapper.class_
            is_owner_rel = target.__name__ == config.owner and rel.key == config.parent
            if not is_owner_rel and self.registry.get_config(target).owner != config.owner:
                continue

            loaded, nested, dirty = relation_state(entity, rel.key)
            if rel.direction is MANYTOONE:
                if nested is not None and loaded and dirty and not is_owner_rel:
                    if not self._is_consistent(session, nested, owner_id, visited):
                        return False
                else:
                    resolved = self.resolver.from_to_one(session, entity, rel)
                    if resolved is not False and resolved != owner_id:
                        self._log_violation(model, rel.key, owner_id, resolved)
                        return False

            elif rel.direction is MANYTOMANY:
                if nested is not None and loaded and dirty:
                    for child in nested:
                        if not self._is_consistent(session, child, owner_id, visited):
                            return False
                else:
                    linked = self.resolver.from_to_many(session, entity, rel)
                    if linked is False:
                        continue
                    for resolved in linked:
                        if resolved != owner_id:
                            self._log_violation(model, rel.key, owner_id, resolved)
                            return False

        return True

    @staticmethod
    def _log_violation(model: type, key: str, expected: Any, actual: Any) -> None:
        log.info(
            "owner mismatch model=%s rel=%s expected=%s actual=%s",
            model.__name__,
            key,
            expected,
            actual,
        )
