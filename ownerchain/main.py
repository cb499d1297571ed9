from __future__ import annotations

import importlib
import logging

from fastapi import FastAPI
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ownerchain.api.main import create_app
from ownerchain.core.ownership import OwnershipGate, OwnershipRegistry, load_declarations
from ownerchain.core.ownership.errors import ConfigurationError
from ownerchain.core.settings import OwnershipSettings, load_settings

log = logging.getLogger("ownerchain.main")


def _import_base(ref: str):
    module_name, _, attr = ref.partition(":")
    if not module_name or not attr:
        raise ConfigurationError(f"OWNERCHAIN_MODELS must look like 'package.module:Base', got {ref!r}")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attr)
    except AttributeError as e:
        raise ConfigurationError(f"{module_name} has no attribute {attr!r}") from e


def build_app(settings: OwnershipSettings) -> FastAPI:
    if not settings.models:
        raise ConfigurationError("Set OWNERCHAIN_MODELS to the declarative base to serve.")

    base = _import_base(settings.models)
    registry = OwnershipRegistry(base, declarations=load_declarations(settings.ownership_file))

    engine = create_engine(settings.database_url)
    session_factory = sessionmaker(bind=engine)
    if settings.gate_enabled:
        OwnershipGate(registry).install(session_factory)

    log.info(
        "ownerchain starting env=%s models=%s gate=%s",
        settings.env,
        settings.models,
        settings.gate_enabled,
    )
    return create_app(registry, session_factory)


if __name__ == "__main__":
    import uvicorn

    settings = load_settings()
    uvicorn.run(build_app(settings), host=settings.host, port=settings.port)
