from decimal import Decimal

import pytest

from services import bom_service
from services.exceptions import ConflictError, InvalidArgumentError, NotFoundError


def codes(rows):
    return [(r.seq, r.component_code) for r in rows]


def test_components_are_appended_in_sequence(db):
    bom_service.add_component(db, "SA_CA", "RM_BOTTLE", "Bottle", 1)
    rows = bom_service.add_component(db, "SA_CA", "RM_CAP", None, "1")

    assert codes(rows) == [(1, "RM_BOTTLE"), (2, "RM_CAP")]
    assert rows[1].component_name == "RM_CAP"


def test_duplicate_component_conflicts(db):
    bom_service.add_component(db, "SA_CA", "RM_BOTTLE", "Bottle", 1)
    with pytest.raises(ConflictError):
        bom_service.add_component(db, "SA_CA", "RM_BOTTLE", "Bottle again", 2)
    # Same code in another variant is fine
    assert len(bom_service.add_component(db, "SA_1L", "RM_BOTTLE", "Bottle", 1)) == 1


def test_delete_resequences_in_original_order(db, make_bom):
    make_bom("SA_PRO", ("A", 1), ("B", 1), ("C", 1), ("D", 1))

    rows = bom_service.delete_component(db, "SA_PRO", "B")

    assert codes(rows) == [(1, "A"), (2, "C"), (3, "D")]


def test_update_component(db, make_bom):
    make_bom("SA_HF", ("RM_LABEL", 1))

    rows = bom_service.update_component(db, "SA_HF", "RM_LABEL", component_name="Front label", quantity=3)

    assert rows[0].component_name == "Front label"
    assert Decimal(rows[0].quantity) == Decimal(3)


def test_missing_component(db):
    with pytest.raises(NotFoundError):
        bom_service.delete_component(db, "SA_HF", "NOPE")
    with pytest.raises(NotFoundError):
        bom_service.update_component(db, "SA_HF", "NOPE", quantity=1)


@pytest.mark.parametrize("quantity", [0, -2, None])
def test_component_quantity_must_be_positive(db, quantity):
    with pytest.raises(InvalidArgumentError):
        bom_service.add_component(db, "SA_CA", "RM_BOTTLE", "Bottle", quantity)


def test_list_groups_by_variant(db, make_bom):
    make_bom("SA_CA", ("RM_BOTTLE_400", 1), ("RM_CAP", 1))
    make_bom("SA_1L", ("RM_BOTTLE_1L", 1))

    grouped = bom_service.list_bom(db)

    assert list(grouped) == ["SA_1L", "SA_CA"]
    assert [r.component_code for r in grouped["SA_CA"]] == ["RM_BOTTLE_400", "RM_CAP"]
    assert list(bom_service.list_bom(db, "SA_1L")) == ["SA_1L"]
