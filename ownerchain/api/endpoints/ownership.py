from __future__ import annotations

from typing import Any, Iterator, List, Optional, Sequence

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

from ownerchain.core.ownership.paths import resolve_owner_path
from ownerchain.core.ownership.registry import OwnershipRegistry

router = APIRouter(prefix="/api/v1/ownership", tags=["ownership"])


def get_registry(request: Request) -> OwnershipRegistry:
    return request.app.state.ownership_registry


def get_session(request: Request) -> Iterator[Session]:
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def _coerce(columns: Sequence[Any], raw: Sequence[str]) -> List[Any]:
    # Path and query values arrive as strings; match the key column types.
    out: List[Any] = []
    for col, value in zip(columns, raw):
        try:
            out.append(col.type.python_type(value))
        except (NotImplementedError, TypeError, ValueError):
            out.append(value)
    out.extend(raw[len(columns):])
    return out


def _load(session: Session, model: type, pk: str) -> Any:
    columns = list(sa_inspect(model).primary_key)
    raw = pk.split(",")
    if len(raw) != len(columns):
        raise HTTPException(status_code=400, detail=f"{model.__name__} key has {len(columns)} part(s)")
    ident = _coerce(columns, raw)
    entity = session.get(model, ident[0] if len(ident) == 1 else tuple(ident))
    if entity is None:
        raise HTTPException(status_code=404, detail=f"{model.__name__} {pk} not found")
    return entity


def _identities(session: Session, stmt) -> List[List[Any]]:
    return [list(sa_inspect(obj).identity) for obj in session.execute(stmt).scalars().all()]


@router.get("/models")
def list_models(registry: OwnershipRegistry = Depends(get_registry)):
    out = []
    for model in registry.models():
        config = registry.get_config(model)
        out.append(
            {
                "model": model.__name__,
                **config.to_dict(),
                "path": resolve_owner_path(registry, model),
            }
        )
    return {"models": out}


@router.get("/models/{model}/path")
def owner_path(model: str, registry: OwnershipRegistry = Depends(get_registry)):
    facade = registry.for_model(model)
    return {"model": facade.model.__name__, "path": facade.owner_path()}


@router.get("/models/{model}/records/{pk}/owner")
def record_owner(
    model: str,
    pk: str,
    registry: OwnershipRegistry = Depends(get_registry),
    session: Session = Depends(get_session),
):
    facade = registry.for_model(model)
    entity = _load(session, facade.model, pk)
    return {"model": facade.model.__name__, "pk": pk, "owner_id": facade.get_owner_id(session, entity)}


@router.get("/models/{model}/records/{pk}/consistency")
def record_consistency(
    model: str,
    pk: str,
    registry: OwnershipRegistry = Depends(get_registry),
    session: Session = Depends(get_session),
):
    facade = registry.for_model(model)
    entity = _load(session, facade.model, pk)
    return {"model": facade.model.__name__, "pk": pk, "consistent": facade.is_owner_consistent(session, entity)}


@router.get("/models/{model}/owned")
def owned_records(
    model: str,
    request: Request,
    owner_id: Optional[List[str]] = Query(default=None),
    registry: OwnershipRegistry = Depends(get_registry),
    session: Session = Depends(get_session),
):
    """Records owned by `owner_id`, or by the X-Owner-Id actor when omitted."""
    facade = registry.for_model(model)
    config = facade.config
    if not config.is_configured:
        return {"model": facade.model.__name__, "records": _identities(session, facade.find_owned())}

    owner_model = registry.model(config.owner)
    if owner_id:
        stmt = facade.find_owned(owner_id=_coerce(list(sa_inspect(owner_model).primary_key), owner_id))
        return {"model": facade.model.__name__, "records": _identities(session, stmt)}

    owner_ref = request.headers.get("x-owner-id")
    actor = _load(session, owner_model, owner_ref) if owner_ref else None
    with owner_model.acting_as(actor):
        stmt = facade.find_owned()
    return {"model": facade.model.__name__, "records": _identities(session, stmt)}


@router.get("/models/{model}/non-owned")
def non_owned_records(
    model: str,
    registry: OwnershipRegistry = Depends(get_registry),
    session: Session = Depends(get_session),
):
    facade = registry.for_model(model)
    return {"model": facade.model.__name__, "records": _identities(session, facade.find_non_owned())}
