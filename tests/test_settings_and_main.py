from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine

from ownerchain.core.ownership import ConfigurationError, OwnershipRejected
from ownerchain.core.settings import OwnershipSettings, load_settings
from ownerchain.main import build_app

from ownership_models import Account, Base, Folder, Item


def test_settings_defaults(monkeypatch):
    for key in (
        "OWNERCHAIN_ENV",
        "OWNERCHAIN_OWNERSHIP_FILE",
        "OWNERCHAIN_GATE_ENABLED",
        "OWNERCHAIN_DATABASE_URL",
        "OWNERCHAIN_MODELS",
        "OWNERCHAIN_HOST",
        "OWNERCHAIN_PORT",
    ):
        monkeypatch.delenv(key, raising=False)

    s = load_settings()
    assert s.env == "dev"
    assert s.ownership_file is None
    assert s.gate_enabled is True
    assert s.database_url == "sqlite://"
    assert s.models is None
    assert s.port == 8001


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("OWNERCHAIN_ENV", "PROD")
    monkeypatch.setenv("OWNERCHAIN_OWNERSHIP_FILE", str(tmp_path / "o.yaml"))
    monkeypatch.setenv("OWNERCHAIN_GATE_ENABLED", "0")
    monkeypatch.setenv("OWNERCHAIN_MODELS", "ownership_models:Base")
    monkeypatch.setenv("OWNERCHAIN_PORT", "not-a-port")

    s = load_settings()
    assert s.env == "prod"
    assert s.ownership_file == Path(tmp_path / "o.yaml")
    assert s.gate_enabled is False
    assert s.models == "ownership_models:Base"
    assert s.port == 8001


def test_build_app_requires_models():
    with pytest.raises(ConfigurationError):
        build_app(OwnershipSettings())


def test_build_app_rejects_malformed_models_ref():
    with pytest.raises(ConfigurationError):
        build_app(OwnershipSettings(models="ownership_models"))
    with pytest.raises(ConfigurationError):
        build_app(OwnershipSettings(models="ownership_models:Missing"))


def test_build_app_serves_models():
    app = build_app(OwnershipSettings(models="ownership_models:Base"))
    c = TestClient(app)
    r = c.get("/api/v1/ownership/models/Item/path")
    assert r.status_code == 200
    assert r.json()["path"] == ["folder", "account"]


def test_build_app_applies_declarations_file(tmp_path):
    f = tmp_path / "ownership.yaml"
    f.write_text("ownership:\n  Item: {}\n", encoding="utf-8")
    app = build_app(OwnershipSettings(models="ownership_models:Base", ownership_file=f))
    r = TestClient(app).get("/api/v1/ownership/models/Item/path")
    assert r.json()["path"] is False


def _file_database(tmp_path) -> str:
    url = f"sqlite:///{tmp_path / 'ownerchain.db'}"
    engine = create_engine(url)
    Base.metadata.create_all(engine)
    engine.dispose()
    return url


def test_build_app_installs_gate(tmp_path):
    url = _file_database(tmp_path)
    app = build_app(OwnershipSettings(models="ownership_models:Base", database_url=url))

    s = app.state.session_factory()
    try:
        s.add_all([Account(id=1), Account(id=2), Folder(id=1, account_id=1), Folder(id=2, account_id=2)])
        s.flush()
        s.add(Item(id=1, folder_id=1, archive_folder_id=2))
        with pytest.raises(OwnershipRejected):
            s.flush()
    finally:
        s.rollback()
        s.close()


def test_build_app_without_gate(tmp_path):
    url = _file_database(tmp_path)
    app = build_app(OwnershipSettings(models="ownership_models:Base", database_url=url, gate_enabled=False))

    s = app.state.session_factory()
    try:
        s.add_all([Account(id=1), Account(id=2), Folder(id=1, account_id=1), Folder(id=2, account_id=2)])
        s.flush()
        s.add(Item(id=1, folder_id=1, archive_folder_id=2))
        s.flush()
    finally:
        s.rollback()
        s.close()
