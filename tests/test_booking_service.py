import os
import threading
from datetime import timedelta

import pytest
from sqlalchemy import event
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import sessionmaker

from app.core.errors import AuthorizationError, ConflictError, ValidationError
from app.core.timeutil import utcnow
from app.db.session import Base, make_engine
from app.models.booking import Booking
from app.models.enums import BookingStatus, ListingStatus, ListingType
from app.schemas.booking import HoldRequest
from app.services import availability_service, booking_service

from conftest import add_car, add_flight, add_hotel, utc


def flight_hold(quantity=1, seat="Economy", day=utc(2024, 12, 25)):
    return HoldRequest(ListingType.FLIGHT, "FL-1", quantity, sub_type=seat, travel_date=day)


def hotel_hold(quantity=1, room="Standard", check_in=utc(2024, 12, 1), check_out=utc(2024, 12, 3)):
    return HoldRequest(ListingType.HOTEL, "HT-1", quantity, sub_type=room, check_in=check_in, check_out=check_out)


def car_hold(pickup=utc(2024, 12, 1), dropoff=utc(2024, 12, 3)):
    return HoldRequest(ListingType.CAR, "CAR-1", 1, check_in=pickup, check_out=dropoff)


def test_create_flight_booking_prices_and_persists_pending(db):
    add_flight(db)
    b = booking_service.create_booking(db, "USR-1", flight_hold(quantity=2), checkout_id="CHK-1")
    assert b.status == BookingStatus.PENDING
    assert b.total_amount == 400.0
    assert b.checkout_id == "CHK-1"
    assert b.id.startswith("BK-")


def test_hotel_nights_round_up(db):
    add_hotel(db)
    b = booking_service.create_booking(
        db, "USR-1", hotel_hold(quantity=2, check_in=utc(2024, 12, 1, 15), check_out=utc(2024, 12, 3, 11))
    )
    # 44 hours -> 2 nights
    assert b.total_amount == 2 * 2 * 100.0


def test_car_days(db):
    add_car(db)
    b = booking_service.create_booking(db, "USR-1", car_hold(utc(2024, 12, 1, 9), utc(2024, 12, 4, 10)))
    assert b.total_amount == 4 * 50.0


def test_capacity_exhaustion_does_not_persist(db):
    add_flight(db)
    booking_service.create_booking(db, "USR-1", flight_hold(seat="Business"))
    with pytest.raises(ValidationError, match="Not enough seats"):
        booking_service.create_booking(db, "USR-2", flight_hold(seat="Business"))
    assert db.query(Booking).count() == 1


def test_car_quantity_over_one_rejected(db):
    add_car(db)
    with pytest.raises(ValidationError, match="not available"):
        booking_service.create_booking(db, "USR-1", HoldRequest(ListingType.CAR, "CAR-1", 2,
                                                                check_in=utc(2024, 12, 1), check_out=utc(2024, 12, 3)))


def test_inactive_listing_is_not_bookable(db):
    add_car(db, status=ListingStatus.INACTIVE)
    with pytest.raises(ValidationError, match="not open for booking"):
        booking_service.create_booking(db, "USR-1", car_hold())


def test_transitions():
    b = Booking(id="B1", status=BookingStatus.PENDING)
    booking_service.transition(b, BookingStatus.CONFIRMED)
    booking_service.transition(b, BookingStatus.CANCELLED)
    with pytest.raises(ValidationError):
        booking_service.transition(b, BookingStatus.CONFIRMED)

    failed = Booking(id="B2", status=BookingStatus.FAILED)
    with pytest.raises(ValidationError):
        booking_service.transition(failed, BookingStatus.PENDING)
    with pytest.raises(ValidationError):
        booking_service.transition(failed, BookingStatus.FAILED)


def test_confirmed_never_moves_to_failed():
    b = Booking(id="B1", status=BookingStatus.CONFIRMED)
    with pytest.raises(ValidationError):
        booking_service.transition(b, BookingStatus.FAILED)
    assert b.status == BookingStatus.CONFIRMED


def test_cancel_returns_inventory(db):
    add_hotel(db)
    before = availability_service.availability(db, ListingType.HOTEL, "HT-1", "Standard",
                                               check_in=utc(2024, 12, 1), check_out=utc(2024, 12, 3))
    b = booking_service.create_booking(db, "USR-1", hotel_hold(quantity=2))
    assert availability_service.availability(db, ListingType.HOTEL, "HT-1", "Standard",
                                             check_in=utc(2024, 12, 1), check_out=utc(2024, 12, 3)) == before - 2
    cancelled, billing_id = booking_service.cancel_booking(db, b.id, "USR-1")
    assert cancelled == [b.id]
    assert billing_id is None
    assert availability_service.availability(db, ListingType.HOTEL, "HT-1", "Standard",
                                             check_in=utc(2024, 12, 1), check_out=utc(2024, 12, 3)) == before


def test_cancel_cascades_over_billing_id(db):
    add_hotel(db)
    b1 = booking_service.create_booking(db, "USR-1", hotel_hold(room="Standard"))
    b2 = booking_service.create_booking(db, "USR-1", hotel_hold(room="Suite"))
    b3 = booking_service.create_booking(db, "USR-1", hotel_hold(room="Standard"))
    booking_service.confirm_bookings(db, [b1, b2], "BILL-X")
    booking_service.fail_bookings(db, [b3.id])
    # a failed sibling under the same billing id stays Failed
    b3.billing_id = "BILL-X"
    db.commit()

    cancelled, billing_id = booking_service.cancel_booking(db, b2.id, "USR-1")
    assert billing_id == "BILL-X"
    assert sorted(cancelled) == sorted([b1.id, b2.id])
    db.expire_all()
    assert db.get(Booking, b1.id).status == BookingStatus.CANCELLED
    assert db.get(Booking, b2.id).status == BookingStatus.CANCELLED
    assert db.get(Booking, b3.id).status == BookingStatus.FAILED


def test_cancel_rules(db):
    add_car(db)
    b = booking_service.create_booking(db, "USR-1", car_hold())
    with pytest.raises(AuthorizationError):
        booking_service.cancel_booking(db, b.id, "USR-2")
    booking_service.cancel_booking(db, b.id, "ADMIN-1", is_admin=True)
    with pytest.raises(ValidationError, match="already cancelled"):
        booking_service.cancel_booking(db, b.id, "USR-1")


def test_fail_bookings_is_idempotent(db):
    add_flight(db)
    b = booking_service.create_booking(db, "USR-1", flight_hold())
    failed, errors = booking_service.fail_bookings(db, [b.id, "BK-MISSING"])
    assert failed == [b.id]
    assert errors == [{"bookingId": "BK-MISSING", "error": "Booking not found"}]

    failed, errors = booking_service.fail_bookings(db, [b.id])
    assert failed == []
    assert errors == []
    db.expire_all()
    assert db.get(Booking, b.id).status == BookingStatus.FAILED


def test_fail_bookings_respects_owner(db):
    add_flight(db)
    b = booking_service.create_booking(db, "USR-1", flight_hold())
    failed, errors = booking_service.fail_bookings(db, [b.id], user_id="USR-2")
    assert failed == []
    assert errors[0]["error"] == "Booking does not belong to user"


def _age(db, booking, minutes):
    booking.created_at = utcnow() - timedelta(minutes=minutes)
    db.commit()


def test_hold_still_pending_before_horizon(db):
    add_flight(db)
    first = booking_service.create_booking(db, "USR-1", flight_hold())
    _age(db, first, 14)
    booking_service.create_booking(db, "USR-1", flight_hold())
    db.expire_all()
    assert db.get(Booking, first.id).status == BookingStatus.PENDING


def test_hold_expired_at_horizon_before_next_create(db):
    add_flight(db, seats=[{"type": "Economy", "price": 200.0, "totalSeats": 1}])
    first = booking_service.create_booking(db, "USR-1", flight_hold())
    _age(db, first, 15)
    # the only seat is free again once the stale hold expires
    second = booking_service.create_booking(db, "USR-1", flight_hold())
    db.expire_all()
    assert db.get(Booking, first.id).status == BookingStatus.FAILED
    assert db.get(Booking, second.id).status == BookingStatus.PENDING


def test_expiry_sweep_only_touches_stale_pending(db):
    add_flight(db)
    stale = booking_service.create_booking(db, "USR-1", flight_hold())
    fresh = booking_service.create_booking(db, "USR-2", flight_hold())
    confirmed = booking_service.create_booking(db, "USR-3", flight_hold())
    booking_service.confirm_bookings(db, [confirmed], "BILL-1")
    _age(db, stale, 30)
    _age(db, confirmed, 30)

    assert booking_service.expire_stale_holds(db) == [stale.id]
    db.expire_all()
    assert db.get(Booking, fresh.id).status == BookingStatus.PENDING
    assert db.get(Booking, confirmed.id).status == BookingStatus.CONFIRMED


def test_list_user_bookings_filters(db):
    add_flight(db)
    a = booking_service.create_booking(db, "USR-1", flight_hold())
    b = booking_service.create_booking(db, "USR-1", flight_hold())
    booking_service.confirm_bookings(db, [b], "BILL-9")
    booking_service.create_booking(db, "USR-2", flight_hold())

    assert {x.id for x in booking_service.list_user_bookings(db, "USR-1")} == {a.id, b.id}
    assert [x.id for x in booking_service.list_user_bookings(db, "USR-1", status=BookingStatus.PENDING)] == [a.id]
    assert [x.id for x in booking_service.list_user_bookings(db, "USR-1", billing_id="BILL-9")] == [b.id]


def test_fail_bookings_leaves_confirmed_alone(db):
    add_flight(db)
    b = booking_service.create_booking(db, "USR-1", flight_hold())
    booking_service.confirm_bookings(db, [b], "BILL-1")

    failed, errors = booking_service.fail_bookings(db, [b.id])
    assert failed == []
    assert errors == [{"bookingId": b.id, "error": "Booking is Confirmed"}]
    db.expire_all()
    assert db.get(Booking, b.id).status == BookingStatus.CONFIRMED


def test_confirm_refuses_a_hold_that_expired_meanwhile(session_factory):
    payer, sweeper = session_factory(), session_factory()
    try:
        add_flight(payer)
        b = booking_service.create_booking(payer, "USR-1", flight_hold())
        loaded = booking_service.get_bookings(payer, [b.id])

        row = sweeper.get(Booking, b.id)
        row.created_at = utcnow() - timedelta(minutes=20)
        sweeper.commit()
        assert booking_service.expire_stale_holds(sweeper) == [b.id]

        with pytest.raises(ConflictError):
            booking_service.confirm_bookings(payer, loaded, "BILL-LATE")

        sweeper.expire_all()
        row = sweeper.get(Booking, b.id)
        assert row.status == BookingStatus.FAILED
        assert row.billing_id is None
    finally:
        payer.close()
        sweeper.close()


def test_confirm_is_all_or_nothing(session_factory):
    payer, other = session_factory(), session_factory()
    try:
        add_flight(payer)
        a = booking_service.create_booking(payer, "USR-1", flight_hold())
        b = booking_service.create_booking(payer, "USR-1", flight_hold())
        loaded = booking_service.get_bookings(payer, [a.id, b.id])
        booking_service.fail_bookings(other, [b.id])

        with pytest.raises(ConflictError):
            booking_service.confirm_bookings(payer, loaded, "BILL-1")
        other.expire_all()
        assert other.get(Booking, a.id).status == BookingStatus.PENDING
        assert other.get(Booking, a.id).billing_id is None
    finally:
        payer.close()
        other.close()


def _compiled_statements(db):
    seen = []

    def capture(state):
        seen.append(str(state.statement.compile(dialect=postgresql.dialect())))

    event.listen(db, "do_orm_execute", capture)
    return seen, capture


def test_create_booking_locks_the_listing_row(db):
    add_flight(db)
    seen, capture = _compiled_statements(db)
    try:
        booking_service.create_booking(db, "USR-1", flight_hold())
    finally:
        event.remove(db, "do_orm_execute", capture)
    assert any("FROM flights" in s and "FOR UPDATE" in s for s in seen)


def test_locked_booking_load_selects_for_update(db):
    add_flight(db)
    b = booking_service.create_booking(db, "USR-1", flight_hold())
    seen, capture = _compiled_statements(db)
    try:
        booking_service.get_bookings(db, [b.id], lock=True)
    finally:
        event.remove(db, "do_orm_execute", capture)
    assert any("FROM bookings" in s and "FOR UPDATE" in s for s in seen)


POSTGRES_URL = os.environ.get("AERIVE_TEST_POSTGRES_URL")


@pytest.mark.skipif(not POSTGRES_URL, reason="AERIVE_TEST_POSTGRES_URL not set")
def test_concurrent_holds_on_last_seat_admit_one():
    engine = make_engine(POSTGRES_URL)
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    try:
        setup = factory()
        add_flight(setup)
        setup.close()

        start = threading.Barrier(2)
        outcomes = []

        def hold(user_id):
            s = factory()
            try:
                start.wait()
                booking_service.create_booking(s, user_id, flight_hold(seat="Business"))
                outcomes.append("held")
            except ValidationError:
                outcomes.append("rejected")
            finally:
                s.close()

        threads = [threading.Thread(target=hold, args=(u,)) for u in ("USR-1", "USR-2")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(outcomes) == ["held", "rejected"]
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()
