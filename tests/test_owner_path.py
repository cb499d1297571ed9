import pytest

from ownerchain.core.ownership import ConfigurationError, OwnershipRegistry
from ownerchain.core.ownership.paths import get_relationship, resolve_owner_path

from ownership_models import Base, Category, Folder, Item, Note, Site, Tag


def test_path_follows_intermediate_models_to_owner(registry):
    assert resolve_owner_path(registry, Item) == ["folder", "account"]
    assert resolve_owner_path(registry, Folder) == ["account"]
    assert resolve_owner_path(registry, Tag) == ["account"]
    assert resolve_owner_path(registry, Site) == ["region"]


def test_pass_through_model_has_no_path(registry):
    assert resolve_owner_path(registry, Note) is False
    assert resolve_owner_path(registry, Category) is False


def test_explicit_foreign_owner_gives_empty_path(registry):
    assert resolve_owner_path(registry, Item, "Region") == []


def test_explicit_same_owner_matches_default(registry):
    assert resolve_owner_path(registry, Item, "Account") == resolve_owner_path(registry, Item)


def test_path_is_deterministic(registry):
    first = resolve_owner_path(registry, Item)
    for _ in range(5):
        assert resolve_owner_path(registry, Item) == first


def test_last_hop_targets_owner_model(registry):
    path = resolve_owner_path(registry, Item)
    model = Item
    for key in path:
        model = get_relationship(model, key).mapper.class_
    assert model.__name__ == registry.get_config(Item).owner


def test_self_referential_chain_is_rejected():
    reg = OwnershipRegistry(Base)
    reg.declare("Category", owner="Account", parent="parent")
    with pytest.raises(ConfigurationError) as ei:
        resolve_owner_path(reg, Category)
    assert "Circular" in str(ei.value)


def test_facade_owner_path(registry):
    assert registry.for_model(Item).owner_path() == ["folder", "account"]
    assert registry.for_model(Note).owner_path() is False
