import pytest
from sqlmodel import select

from conftest import add_stock
from tanyourpeach.core.errors import ErrorKind
from tanyourpeach.models.financial_log import FinancialLog, FinancialLogType
from tanyourpeach.models.inventory import InventoryItem
from tanyourpeach.models.service import Service
from tanyourpeach.services import inventory_ledger


@pytest.fixture
def other_service(session):
    service = Service(name="Bridal Bronze", base_price=120.0, duration_minutes=90)
    session.add(service)
    session.commit()
    session.refresh(service)
    return service


def test_service_without_usage_is_always_available(session, service):
    assert inventory_ledger.check_availability(session, service.id) is True
    assert inventory_ledger.deduct(session, service.id).ok


def test_available_when_every_item_covers_usage(session, service):
    add_stock(session, service, "Gloves", quantity=2, unit_cost=0.5, used=2)
    add_stock(session, service, "Solution", quantity=10, unit_cost=1.0, used=4)

    assert inventory_ledger.check_availability(session, service.id) is True
    assert inventory_ledger.shortages(session, service.id) == []


def test_shortage_reports_each_missing_item(session, service):
    add_stock(session, service, "Gloves", quantity=5, unit_cost=0.5, used=2)
    add_stock(session, service, "Cap", quantity=1, unit_cost=1.0, used=5)

    missing = inventory_ledger.shortages(session, service.id)

    assert inventory_ledger.check_availability(session, service.id) is False
    assert [(s.item_name, s.required, s.on_hand) for s in missing] == [("Cap", 5, 1)]
    assert missing[0].describe() == "Cap (needs 5, has 1)"


def test_usage_of_other_services_is_ignored(session, service, other_service):
    add_stock(session, other_service, "Cap", quantity=0, unit_cost=1.0, used=1)
    assert inventory_ledger.check_availability(session, service.id) is True


def test_deduct_subtracts_usage(session, service):
    gloves = add_stock(session, service, "Gloves", quantity=5, unit_cost=1.5, used=2)
    solution = add_stock(session, service, "Solution", quantity=10, unit_cost=1.0, used=4)

    assert inventory_ledger.deduct(session, service.id).ok
    session.commit()

    assert session.get(InventoryItem, gloves.id).quantity == 3
    assert session.get(InventoryItem, solution.id).quantity == 6


def test_deduct_is_all_or_nothing(session, service):
    plenty = add_stock(session, service, "Gloves", quantity=5, unit_cost=1.5, used=2)
    scarce = add_stock(session, service, "Solution", quantity=1, unit_cost=1.0, used=4)

    result = inventory_ledger.deduct(session, service.id)
    assert result.error.kind == ErrorKind.BUSINESS_RULE
    assert "Solution" in result.error.message
    session.rollback()

    assert session.get(InventoryItem, plenty.id).quantity == 5
    assert session.get(InventoryItem, scarce.id).quantity == 1


def test_deduct_rechecks_stock_changed_after_check(session, service):
    gloves = add_stock(session, service, "Gloves", quantity=2, unit_cost=1.5, used=2)
    assert inventory_ledger.check_availability(session, service.id)

    # a concurrent confirmation got there first
    first = inventory_ledger.deduct(session, service.id)
    assert first.ok
    second = inventory_ledger.deduct(session, service.id)
    assert not second.ok
    session.rollback()

    assert session.get(InventoryItem, gloves.id).quantity == 2


def test_restock_adds_quantity_and_books_expense(session):
    item = InventoryItem(item_name="Gloves", quantity=3, unit_cost=1.5)
    session.add(item)
    session.flush()

    entry = inventory_ledger.restock(session, item, 4)
    session.commit()

    assert session.get(InventoryItem, item.id).quantity == 7
    logs = session.exec(select(FinancialLog)).all()
    assert [log.id for log in logs] == [entry.id]
    assert entry.type == FinancialLogType.expense
    assert entry.source == "inventory"
    assert entry.reference_id == item.id
    assert entry.amount == pytest.approx(6.0)


def test_restock_ignores_non_positive_amounts(session):
    item = InventoryItem(item_name="Gloves", quantity=3, unit_cost=1.5)
    session.add(item)
    session.flush()

    assert inventory_ledger.restock(session, item, 0) is None
    assert item.quantity == 3


def test_low_stock(session):
    session.add_all(
        [
            InventoryItem(item_name="Gloves", quantity=2, unit_cost=0.1),
            InventoryItem(item_name="Solution", quantity=40, unit_cost=0.8),
            InventoryItem(item_name="Cap", quantity=0, unit_cost=0.3),
        ]
    )
    session.commit()

    assert [i.item_name for i in inventory_ledger.low_stock(session, 5)] == ["Cap", "Gloves"]
