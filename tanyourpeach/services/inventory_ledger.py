"""On-hand inventory and its consumption by services.

Nothing here commits: the caller owns the transaction and must roll back
when ``deduct`` reports a failure.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlmodel import Session, select

from tanyourpeach.core.errors import ErrorKind, Result
from tanyourpeach.models.financial_log import FinancialLog, FinancialLogType
from tanyourpeach.models.inventory import InventoryItem, ServiceInventoryUsage
from tanyourpeach.models.timestamps import utc_now
from tanyourpeach.services import billing

logger = logging.getLogger(__name__)


@dataclass
class Shortage:
    item_id: int
    item_name: str
    required: int
    on_hand: int

    def describe(self) -> str:
        return f"{self.item_name} (needs {self.required}, has {self.on_hand})"


def usage_rows(session: Session, service_id: int) -> List[Tuple[ServiceInventoryUsage, InventoryItem]]:
    return session.exec(
        select(ServiceInventoryUsage, InventoryItem)
        .join(InventoryItem, InventoryItem.id == ServiceInventoryUsage.item_id)
        .where(ServiceInventoryUsage.service_id == service_id)
        .order_by(InventoryItem.id)
    ).all()


def shortages(session: Session, service_id: int) -> List[Shortage]:
    return [
        Shortage(item.id, item.item_name, usage.quantity_used, item.quantity)
        for usage, item in usage_rows(session, service_id)
        if item.quantity < usage.quantity_used
    ]


def check_availability(session: Session, service_id: int) -> bool:
    return not shortages(session, service_id)


def deduct(session: Session, service_id: int) -> Result[None]:
    """Consume one occurrence of the service from stock.

    Each item is decremented with a single conditional UPDATE so two
    concurrent confirmations can never push a quantity below zero; a
    row count of 0 means the stock moved under us.
    """
    now = utc_now()

    for usage, item in usage_rows(session, service_id):
        result = session.exec(
            update(InventoryItem)
            .where(
                InventoryItem.id == item.id,
                InventoryItem.quantity >= usage.quantity_used,
            )
            .values(
                quantity=InventoryItem.quantity - usage.quantity_used,
                last_updated=now,
            )
        )
        if result.rowcount == 0:
            logger.warning(
                "Deduction of %s x %s for service %s failed: insufficient stock",
                usage.quantity_used, item.item_name, service_id,
            )
            return Result.failure(
                ErrorKind.BUSINESS_RULE,
                f"Insufficient inventory for {item.item_name}",
            )

        logger.info("Deducted %s x %s for service %s", usage.quantity_used, item.item_name, service_id)

    return Result.success()


def restock(session: Session, item: InventoryItem, added: int) -> Optional[FinancialLog]:
    """Add stock to an item and stage the matching expense entry."""
    if added <= 0:
        return None

    item.quantity += added
    item.last_updated = utc_now()
    session.add(item)

    return billing.append_log(
        session,
        type=FinancialLogType.expense,
        amount=round(added * float(item.unit_cost), 2),
        source="inventory",
        reference_id=item.id,
        description=f"Restocked {added} x {item.item_name}",
    )


def low_stock(session: Session, threshold: int) -> List[InventoryItem]:
    return session.exec(
        select(InventoryItem)
        .where(InventoryItem.quantity <= threshold)
        .order_by(InventoryItem.quantity, InventoryItem.id)
    ).all()
