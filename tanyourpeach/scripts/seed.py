import logging
from datetime import date, time, timedelta

from sqlmodel import Session, select

from tanyourpeach.core.security import get_password_hash
from tanyourpeach.database import create_db_and_tables, engine
from tanyourpeach.models.availability import Availability
from tanyourpeach.models.inventory import InventoryItem, ServiceInventoryUsage
from tanyourpeach.models.service import Service
from tanyourpeach.models.user import User
from tanyourpeach.services import inventory_ledger

logger = logging.getLogger(__name__)


ADMIN_EMAIL = "admin@tanyourpeach.com"
ADMIN_PASSWORD = "peachy-admin"

SERVICES = [
    dict(name="Classic Glow", description="Full-body airbrush tan", base_price=45.0, duration_minutes=30),
    dict(name="Glow Up", description="Airbrush tan with contouring", base_price=60.0, duration_minutes=45),
    dict(name="Bridal Bronze", description="Trial plus event-day tan", base_price=120.0, duration_minutes=90),
]

INVENTORY = [
    dict(item_name="Tanning Solution (oz)", quantity=200, unit_cost=0.85),
    dict(item_name="Gloves", quantity=100, unit_cost=0.15),
    dict(item_name="Disposable Cap", quantity=50, unit_cost=0.30),
]

# service name -> {item name: quantity used per appointment}
USAGE = {
    "Classic Glow": {"Tanning Solution (oz)": 4, "Gloves": 2, "Disposable Cap": 1},
    "Glow Up": {"Tanning Solution (oz)": 6, "Gloves": 2, "Disposable Cap": 1},
    "Bridal Bronze": {"Tanning Solution (oz)": 10, "Gloves": 4, "Disposable Cap": 2},
}

# slots per day, Monday-Saturday
SLOT_TIMES = [(time(h, 0), time(h, 45)) for h in (10, 11, 13, 14, 15, 16)]


def seed(session: Session, start: date | None = None, days: int = 7) -> None:
    """Create demo data; rows that already exist are left alone."""

    # 1) admin
    admin = session.exec(select(User).where(User.email == ADMIN_EMAIL)).first()
    if not admin:
        session.add(
            User(
                name="Salon Admin",
                email=ADMIN_EMAIL,
                password_hash=get_password_hash(ADMIN_PASSWORD),
                is_admin=True,
            )
        )

    # 2) services
    services = {}
    for cfg in SERVICES:
        row = session.exec(select(Service).where(Service.name == cfg["name"])).first()
        if not row:
            row = Service(**cfg)
            session.add(row)
        services[cfg["name"]] = row

    # 3) inventory, opening stock booked as an expense
    items = {}
    for cfg in INVENTORY:
        row = session.exec(select(InventoryItem).where(InventoryItem.item_name == cfg["item_name"])).first()
        if not row:
            row = InventoryItem(item_name=cfg["item_name"], quantity=0, unit_cost=cfg["unit_cost"])
            session.add(row)
            session.flush()
            inventory_ledger.restock(session, row, cfg["quantity"])
        items[cfg["item_name"]] = row

    session.flush()

    # 4) usage rows
    for service_name, consumed in USAGE.items():
        service = services[service_name]
        for item_name, quantity_used in consumed.items():
            item = items[item_name]
            if not session.get(ServiceInventoryUsage, (service.id, item.id)):
                session.add(
                    ServiceInventoryUsage(service_id=service.id, item_id=item.id, quantity_used=quantity_used)
                )

    # 5) availability for the coming week, Sundays closed
    first_day = start or date.today() + timedelta(days=1)
    for offset in range(days):
        day = first_day + timedelta(days=offset)
        if day.weekday() == 6:
            continue
        for start_time, end_time in SLOT_TIMES:
            exists = session.exec(
                select(Availability).where(
                    Availability.slot_date == day,
                    Availability.start_time == start_time,
                )
            ).first()
            if not exists:
                session.add(Availability(slot_date=day, start_time=start_time, end_time=end_time))

    session.commit()
    logger.info("Seed finished: admin %s, %s services, %s inventory items", ADMIN_EMAIL, len(services), len(items))


def main():
    logging.basicConfig(level=logging.INFO)
    create_db_and_tables()
    with Session(engine) as session:
        seed(session)


if __name__ == "__main__":
    main()
