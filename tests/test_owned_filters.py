import pytest
from sqlalchemy import select

from ownerchain.core.ownership import DataIntegrityError, InvalidArgumentError

from ownership_models import Account, Folder, Item, Note, Region, Site


def _ids(session, stmt):
    return sorted(obj.id for obj in session.execute(stmt).scalars().all())


def test_owned_by_explicit_id(registry, seeded):
    stmt = registry.for_model(Item).find_owned(owner_id=9)
    assert _ids(seeded, stmt) == [1]

    stmt = registry.for_model(Item).find_owned(owner_id=10)
    assert _ids(seeded, stmt) == [2]


def test_owned_accepts_list_and_mapping(registry, seeded):
    facade = registry.for_model(Folder)
    assert _ids(seeded, facade.find_owned(owner_id=[9])) == [5]
    assert _ids(seeded, facade.find_owned(owner_id={"id": 10})) == [6]


def test_owned_extends_given_statement(registry, seeded):
    stmt = select(Item).where(Item.title == "one")
    assert _ids(seeded, registry.for_model(Item).find_owned(stmt, owner_id=9)) == [1]
    assert _ids(seeded, registry.for_model(Item).find_owned(stmt, owner_id=10)) == []


def test_owned_by_current_actor(registry, seeded):
    account = seeded.get(Account, 10)
    with Account.acting_as(account):
        stmt = registry.for_model(Item).find_owned()
    assert _ids(seeded, stmt) == [2]
    assert Account.get_current_entity() is None


def test_actor_is_scoped_per_owner_class(seeded):
    account = seeded.get(Account, 9)
    with Account.acting_as(account):
        assert Account.get_current_entity() is account
        assert Region.get_current_entity() is None


def test_no_actor_leaves_statement_untouched(registry):
    stmt = select(Item)
    assert registry.for_model(Item).find_owned(stmt) is stmt


def test_pass_through_model_is_untouched(registry):
    stmt = select(Note)
    assert registry.for_model(Note).find_owned(stmt, owner_id=9) is stmt
    assert registry.for_model(Note).find_non_owned(stmt) is stmt


def test_actor_without_primary_key_is_rejected(registry):
    with Account.acting_as(Account(name="unsaved")):
        with pytest.raises(DataIntegrityError):
            registry.for_model(Item).find_owned()


def test_non_owned_records(registry, seeded):
    stmt = registry.for_model(Item).find_non_owned()
    assert _ids(seeded, stmt) == [3, 4]

    stmt = registry.for_model(Site).find_non_owned()
    assert _ids(seeded, stmt) == [2]


@pytest.mark.parametrize("owner_id", [[], [9, 10]])
def test_owner_id_arity_mismatch(registry, owner_id):
    with pytest.raises(InvalidArgumentError) as ei:
        registry.for_model(Item).find_owned(owner_id=owner_id)
    assert "length must be 1" in str(ei.value)


def test_composite_owner_id(registry, seeded):
    facade = registry.for_model(Site)
    assert _ids(seeded, facade.find_owned(owner_id=["jp", "13"])) == [1]
    assert _ids(seeded, facade.find_owned(owner_id={"code": "13", "country": "jp"})) == [1]

    with pytest.raises(InvalidArgumentError):
        facade.find_owned(owner_id=["jp"])


def test_mapping_with_wrong_keys_is_rejected(registry):
    with pytest.raises(InvalidArgumentError):
        registry.for_model(Item).find_owned(owner_id={"pk": 9})


def test_filter_descriptor(registry):
    f = registry.filters.owned(Item, 9)
    assert f.path == ("folder", "account")
    assert f.conditions == (("id", 9),)
    assert f.outer is False

    nf = registry.filters.non_owned(Item)
    assert nf.conditions == (("id", None),)
    assert nf.outer is True
