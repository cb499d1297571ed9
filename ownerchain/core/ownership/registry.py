from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Union

from sqlalchemy.orm.interfaces import MANYTOONE

from .errors import ConfigurationError, UnknownModelError
from .filters import OwnerFilterBuilder
from .identity import OwnerIdentityResolver
from .models import PASS_THROUGH, OwnershipConfig, OwnershipDeclaration
from .paths import get_relationship
from .provider import is_owner_provider
from .verifier import ConsistencyVerifier

log = logging.getLogger("ownerchain.ownership")

ModelRef = Union[str, type]


class OwnershipRegistry:
    """Per-model ownership configuration, validated once and cached.

    Models are discovered from the declarative bases passed in. A model opts in
    with a class attribute:

        class Item(Base):
            __ownership__ = {"owner": "Account", "parent": "folder"}

    or through `declare()` / a declarations file, which take precedence.
    Models with neither are pass-through types.
    """

    def __init__(self, *bases: Any, declarations: Optional[Mapping[str, OwnershipDeclaration]] = None):
        self._bases: List[Any] = []
        self._models: Dict[str, type] = {}
        self._declarations: Dict[str, OwnershipDeclaration] = {}
        self._configs: Dict[str, OwnershipConfig] = {}
        self._facades: Dict[type, Any] = {}
        self._lock = threading.Lock()

        self.identity = OwnerIdentityResolver(self)
        self.verifier = ConsistencyVerifier(self, self.identity)
        self.filters = OwnerFilterBuilder(self)

        for base in bases:
            self.add_base(base)
        for name, decl in (declarations or {}).items():
            self.declare(name, owner=decl.owner, parent=decl.parent)

    # ------------------------------------------------------------
    # Model discovery
    # ------------------------------------------------------------
    def add_base(self, base: Any) -> None:
        self._bases.append(base)
        try:
            self._scan()
        except ConfigurationError:
            self._bases.remove(base)
            raise

    def _scan(self) -> None:
        found: Dict[str, type] = {}
        for base in self._bases:
            # DeclarativeBase subclass or a bare sqlalchemy.orm.registry
            reg = getattr(base, "registry", base)
            for mapper in reg.mappers:
                cls = mapper.class_
                known = found.setdefault(cls.__name__, cls)
                if known is not cls:
                    raise ConfigurationError(
                        f"Model name '{cls.__name__}' is mapped by both "
                        f"{known.__module__}.{known.__qualname__} and {cls.__module__}.{cls.__qualname__}."
                    )
        self._models = found

    def models(self) -> List[type]:
        self._scan()
        return [self._models[k] for k in sorted(self._models)]

    def model(self, ref: ModelRef) -> type:
        if isinstance(ref, type):
            return ref
        if ref not in self._models:
            self._scan()
        try:
            return self._models[ref]
        except KeyError:
            raise UnknownModelError(ref) from None

    # ------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------
    def declare(self, model_name: str, owner: Optional[str] = None, parent: Optional[str] = None) -> None:
        with self._lock:
            if model_name in self._configs:
                raise ConfigurationError(
                    f"Ownership of {model_name} is already in use; declare it before first use."
                )
            self._declarations[model_name] = OwnershipDeclaration(owner=owner, parent=parent)

    def _declaration_for(self, model: type) -> Optional[OwnershipDeclaration]:
        decl = self._declarations.get(model.__name__)
        if decl is not None:
            return decl

        raw = getattr(model, "__ownership__", None)
        if raw is None:
            return None
        if isinstance(raw, OwnershipDeclaration):
            return raw
        try:
            return OwnershipDeclaration(**dict(raw))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid __ownership__ on {model.__name__}: {e}") from e

    # ------------------------------------------------------------
    # Config cache
    # ------------------------------------------------------------
    def get_config(self, ref: ModelRef) -> OwnershipConfig:
        model = self.model(ref)
        name = model.__name__

        cached = self._configs.get(name)
        if cached is not None:
            return cached

        config = self._build_config(model)
        with self._lock:
            return self._configs.setdefault(name, config)

    def _build_config(self, model: type) -> OwnershipConfig:
        decl = self._declaration_for(model)
        if decl is None:
            return PASS_THROUGH

        name = model.__name__
        owner, parent = decl.owner, decl.parent
        if owner is not None and parent is not None:
            try:
                owner_model = self.model(owner)
            except UnknownModelError as e:
                raise ConfigurationError(f"Owner '{owner}' of {name} is not a mapped model.") from e
            if not is_owner_provider(owner_model):
                raise ConfigurationError(f"{owner} must implement OwnerProvider.")

            rel = get_relationship(model, parent)
            if rel is None or rel.direction is not MANYTOONE:
                raise ConfigurationError(
                    f"{name} must have a many-to-one relationship with the '{parent}' key."
                )
        elif owner is not None or parent is not None:
            raise ConfigurationError("Both 'owner' and 'parent' must be either set or None.")

        log.debug("ownership config loaded model=%s owner=%s parent=%s", name, owner, parent)
        return OwnershipConfig(owner=owner, parent=parent)

    def reset(self) -> None:
        """Test helper: forget cached configs so declarations can change."""
        with self._lock:
            self._configs.clear()
            self._facades.clear()

    # ------------------------------------------------------------
    # Facades
    # ------------------------------------------------------------
    def for_model(self, ref: ModelRef):
        from .behavior import ModelOwnership

        model = self.model(ref)
        facade = self._facades.get(model)
        if facade is None:
            with self._lock:
                facade = self._facades.setdefault(model, ModelOwnership(self, model))
        return facade
