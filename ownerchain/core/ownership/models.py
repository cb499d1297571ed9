from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from .paths import join_path


# Owner identity: {pk_attr: value}. None means "unowned", False means "absent".
OwnerId = Dict[str, Any]
OwnerIdResult = Union[OwnerId, None, Literal[False]]


class OwnershipDeclaration(BaseModel):
    model_config = ConfigDict(extra="forbid")

    owner: Optional[str] = None
    parent: Optional[str] = None


@dataclass(frozen=True)
class OwnershipConfig:
    owner: Optional[str] = None
    parent: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return self.owner is not None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"owner": self.owner, "parent": self.parent}


PASS_THROUGH = OwnershipConfig()


@dataclass(frozen=True)
class OwnerFilter:
    """Join path + predicate selecting records by owner.

    `conditions` pairs owner primary-key attributes with the value they must
    equal; a value of None means IS NULL.
    """

    model: type
    path: Tuple[str, ...]
    conditions: Tuple[Tuple[str, Any], ...]
    outer: bool = False

    def apply(self, stmt):
        stmt, terminal = join_path(stmt, self.model, self.path, outer=self.outer)
        clauses = []
        for key, value in self.conditions:
            col = getattr(terminal, key)
            clauses.append(col.is_(None) if value is None else col == value)
        return stmt.where(*clauses)
