from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Tuple, Union

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import RelationshipProperty, aliased

from .errors import ConfigurationError

if TYPE_CHECKING:
    from .registry import OwnershipRegistry


def get_relationship(model: type, key: str) -> Optional[RelationshipProperty]:
    rels = sa_inspect(model).relationships
    if key not in rels:
        return None
    return rels[key]


def resolve_owner_path(
    registry: "OwnershipRegistry",
    model: type,
    owner: Optional[str] = None,
) -> Union[List[str], bool]:
    """Relation keys leading from `model` to its owner model.

    Intermediate models are followed as long as they declare the same owner,
    so the last key is always the relation into the owner model itself.
    Returns False when `model` declares no parent relation. With an explicit
    `owner` that differs from the model's own, the path is empty.
    """
    config = registry.get_config(model)
    if config.parent is None:
        return False
    if owner is None:
        owner = config.owner

    path: List[str] = []
    current = model
    seen = {current}
    while config.owner == owner:
        path.append(config.parent)
        current = get_relationship(current, config.parent).mapper.class_
        if current in seen:
            raise ConfigurationError(
                f"Circular ownership configuration: {' -> '.join(path)} returns to {current.__name__}."
            )
        seen.add(current)
        config = registry.get_config(current)

    return path


def path_joins(model: type, path: Sequence[str]) -> Tuple[List[Any], Any]:
    """ORM onclauses for each hop of `path`, one alias per hop.

    Returns (onclauses, terminal) where terminal is the alias of the last hop,
    or `model` itself for an empty path.
    """
    terminal = model
    onclauses: List[Any] = []
    for key in path:
        attr = getattr(terminal, key)
        target = aliased(attr.property.mapper.class_)
        onclauses.append(attr.of_type(target))
        terminal = target
    return onclauses, terminal


def join_path(stmt, model: type, path: Sequence[str], outer: bool = False):
    onclauses, terminal = path_joins(model, path)
    for onclause in onclauses:
        stmt = stmt.outerjoin(onclause) if outer else stmt.join(onclause)
    return stmt, terminal
