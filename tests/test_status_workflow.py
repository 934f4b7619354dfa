from datetime import date, time, timedelta

import pytest
from sqlmodel import select

from conftest import add_stock, make_slot
from tanyourpeach.core.errors import ErrorKind
from tanyourpeach.models.appointment import AppointmentCreate, AppointmentStatus, AppointmentUpdate
from tanyourpeach.models.availability import Availability
from tanyourpeach.models.financial_log import FinancialLog, FinancialLogType
from tanyourpeach.models.inventory import InventoryItem
from tanyourpeach.models.receipt import Receipt
from tanyourpeach.models.status_history import AppointmentStatusHistory
from tanyourpeach.services import appointment_service


def _history(session, appointment_id):
    return session.exec(
        select(AppointmentStatusHistory)
        .where(AppointmentStatusHistory.appointment_id == appointment_id)
        .order_by(AppointmentStatusHistory.id)
    ).all()


def _receipts(session):
    return session.exec(select(Receipt)).all()


def _logs(session):
    return session.exec(select(FinancialLog)).all()


EDITABLE_FIELDS = (
    "service_id", "availability_id", "client_name", "client_email", "client_address",
    "appointment_date_time", "travel_fee", "total_price", "notes",
)


def _update(appointment, **changes):
    # attribute access reloads rows expired by a previous commit
    values = {field: getattr(appointment, field) for field in EDITABLE_FIELDS}
    values.update(changes)
    return AppointmentUpdate(**values)


class TestConfirmationOverHttp:
    def test_confirm_creates_receipt_log_and_deducts_inventory(
        self, client, session, admin_headers, appointment, service, body_for
    ):
        gloves = add_stock(session, service, "Gloves", quantity=5, unit_cost=1.50, used=2)

        response = client.put(
            f"/api/appointments/{appointment.id}",
            headers=admin_headers,
            json=body_for(appointment, status="CONFIRMED"),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "CONFIRMED"

        receipts = _receipts(session)
        assert len(receipts) == 1
        assert receipts[0].appointment_id == appointment.id
        assert receipts[0].payment_method == "Unpaid"
        assert receipts[0].total_amount == pytest.approx(50.0)

        logs = _logs(session)
        assert len(logs) == 1
        assert logs[0].type == FinancialLogType.revenue
        assert logs[0].source == "appointment"
        assert logs[0].reference_id == appointment.id

        assert session.get(InventoryItem, gloves.id).quantity == 3

    def test_confirm_fails_when_inventory_insufficient(
        self, client, session, admin_headers, appointment, service, body_for
    ):
        cap = add_stock(session, service, "Cap", quantity=1, unit_cost=1.00, used=5)

        response = client.put(
            f"/api/appointments/{appointment.id}",
            headers=admin_headers,
            json=body_for(appointment, status="CONFIRMED", client_name="Should Not Stick"),
        )

        assert response.status_code == 400
        assert "Insufficient inventory" in response.json()["detail"]
        assert _receipts(session) == []
        assert _logs(session) == []
        assert session.get(InventoryItem, cap.id).quantity == 1

        session.expire_all()
        stored = client.get(f"/api/appointments/{appointment.id}", headers=admin_headers).json()
        assert stored["status"] == "PENDING"
        assert stored["client_name"] == "Brenna"
        assert len(_history(session, appointment.id)) == 1

    def test_receipt_uses_total_price_when_set(self, client, session, admin_headers, appointment, body_for):
        response = client.put(
            f"/api/appointments/{appointment.id}",
            headers=admin_headers,
            json=body_for(appointment, status="CONFIRMED", travel_fee=50.0, total_price=100.0),
        )

        assert response.status_code == 200
        receipt = _receipts(session)[0]
        assert receipt.payment_method == "Unpaid"
        assert receipt.total_amount == pytest.approx(100.0)
        assert _logs(session)[0].amount == pytest.approx(100.0)

    def test_receipt_falls_back_to_base_price_plus_travel_fee(
        self, client, session, admin_headers, appointment, body_for
    ):
        client.put(
            f"/api/appointments/{appointment.id}",
            headers=admin_headers,
            json=body_for(appointment, status="CONFIRMED", travel_fee=12.5),
        )
        assert _receipts(session)[0].total_amount == pytest.approx(62.5)

    def test_cancelling_records_history_without_receipt(
        self, client, session, admin_headers, appointment, slot, body_for, admin
    ):
        response = client.put(
            f"/api/appointments/{appointment.id}",
            headers=admin_headers,
            json=body_for(appointment, status="CANCELLED"),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"

        history = _history(session, appointment.id)
        assert [h.status for h in history] == ["PENDING", "CANCELLED"]
        assert history[1].changed_by_user_id == admin.id
        assert _receipts(session) == []
        assert _logs(session) == []
        assert session.get(Availability, slot.id).is_booked is False

    def test_owner_can_cancel(self, client, session, user_headers, appointment, body_for, user):
        response = client.put(
            f"/api/appointments/{appointment.id}",
            headers=user_headers,
            json=body_for(appointment, status="CANCELLED"),
        )
        assert response.status_code == 200
        assert _history(session, appointment.id)[-1].changed_by_user_id == user.id


class TestGlovesScenario:
    """Two appointments share a service using 2 gloves each; 5 gloves then 1 left."""

    def test_second_confirmation_is_rejected(self, client, session, admin_headers, appointment, service, body_for):
        gloves = add_stock(session, service, "Gloves", quantity=5, unit_cost=1.50, used=2)

        first = client.put(
            f"/api/appointments/{appointment.id}",
            headers=admin_headers,
            json=body_for(appointment, status="CONFIRMED"),
        )
        assert first.status_code == 200
        assert session.get(InventoryItem, gloves.id).quantity == 3

        # someone used two more gloves by hand
        client.put(f"/api/inventory/{gloves.id}", headers=admin_headers, json={"quantity": 1})
        assert session.get(InventoryItem, gloves.id).quantity == 1

        second_slot = make_slot(session, date.today() + timedelta(days=3), time(10, 0), time(10, 30))
        created = client.post(
            "/api/appointments",
            json={
                "service_id": service.id,
                "availability_id": second_slot.id,
                "client_name": "Second",
                "client_email": "second@example.com",
                "client_address": "9 Orchard Ln",
            },
        ).json()

        second = client.put(
            f"/api/appointments/{created['id']}",
            headers=admin_headers,
            json={**{k: created[k] for k in EDITABLE_FIELDS}, "status": "CONFIRMED"},
        )

        assert second.status_code == 400
        assert session.get(InventoryItem, gloves.id).quantity == 1
        assert len(_receipts(session)) == 1
        assert len([log for log in _logs(session) if log.type == FinancialLogType.revenue]) == 1


class TestTransitionHandler:
    def test_reconfirming_confirmed_appointment_is_a_no_op(self, session, admin, appointment, service):
        add_stock(session, service, "Gloves", quantity=10, unit_cost=1.0, used=2)

        first = appointment_service.update_appointment(
            session, appointment.id, _update(appointment, status=AppointmentStatus.CONFIRMED), admin
        )
        assert first.ok
        again = appointment_service.update_appointment(
            session, appointment.id, _update(appointment, status=AppointmentStatus.CONFIRMED), admin
        )
        assert again.ok

        assert len(_receipts(session)) == 1
        assert len(_logs(session)) == 1
        assert [h.status for h in _history(session, appointment.id)] == ["PENDING", "CONFIRMED"]

    def test_confirm_after_cancel_keeps_single_receipt_but_records_history(
        self, session, admin, appointment, service
    ):
        gloves = add_stock(session, service, "Gloves", quantity=10, unit_cost=1.0, used=2)

        for status in (AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED, AppointmentStatus.CONFIRMED):
            result = appointment_service.update_appointment(
                session, appointment.id, _update(appointment, status=status), admin
            )
            assert result.ok, result.error

        assert len(_receipts(session)) == 1
        assert len(_logs(session)) == 1
        assert session.get(InventoryItem, gloves.id).quantity == 8
        assert [h.status for h in _history(session, appointment.id)] == [
            "PENDING", "CONFIRMED", "CANCELLED", "CONFIRMED",
        ]

    def test_history_grows_with_every_status_change(self, session, admin, appointment):
        for status in (AppointmentStatus.CANCELLED, AppointmentStatus.PENDING, AppointmentStatus.COMPLETED):
            assert appointment_service.update_appointment(
                session, appointment.id, _update(appointment, status=status), admin
            ).ok

        assert len(_history(session, appointment.id)) == 4

    def test_status_none_keeps_current_status(self, session, admin, appointment):
        result = appointment_service.update_appointment(
            session, appointment.id, _update(appointment, client_name="Renamed"), admin
        )
        assert result.ok
        assert result.value.status == AppointmentStatus.PENDING
        assert len(_history(session, appointment.id)) == 1

    def test_non_confirmed_statuses_never_bill(self, session, admin, appointment):
        for status in (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED):
            appointment_service.update_appointment(
                session, appointment.id, _update(appointment, status=status, total_price=80.0), admin
            )
        assert _receipts(session) == []
        assert _logs(session) == []

    def test_reactivating_cancelled_appointment_needs_free_slot(self, session, admin, appointment, service, slot):
        cancelled = appointment_service.update_appointment(
            session, appointment.id, _update(appointment, status=AppointmentStatus.CANCELLED), admin
        )
        assert cancelled.ok

        taken = appointment_service.create_appointment(
            session,
            AppointmentCreate(
                service_id=service.id,
                availability_id=slot.id,
                client_name="Walk In",
                client_email="walkin@example.com",
                client_address="1 Main St",
            ),
        )
        assert taken.ok

        result = appointment_service.update_appointment(
            session, appointment.id, _update(appointment, status=AppointmentStatus.PENDING), admin
        )

        assert result.error.kind == ErrorKind.BUSINESS_RULE
        assert session.get(Availability, slot.id).is_booked is True

    def test_anonymous_update_is_refused(self, session, appointment):
        result = appointment_service.update_appointment(session, appointment.id, _update(appointment), None)
        assert result.error.kind == ErrorKind.AUTHORIZATION
