"""
Report Aggregator: occupancy, room performance and financial aggregates.

Every function is read-only and takes no locks. Each report reads everything
it needs with a single statement (rooms are outer-joined to their bookings
where both are needed) and aggregates in memory, so one report never mixes
two states of the same booking. Mutations committed while a report runs may
or may not be reflected in it.

Inclusion rules (configurable, see Settings):
  - occupancy counts OCCUPANCY_STATUSES (default confirmed + checked_in)
  - upcoming arrivals count UPCOMING_STATUSES (default confirmed)
  - financial revenue counts checked_out, plus checked_in when
    FINANCIAL_INCLUDE_CHECKED_IN is set
  - room performance counts every non-cancelled booking and reports the
    checked-out share separately
  - the revenue trend counts confirmed, checked_in and checked_out
  - guest segmentation counts every non-cancelled booking

Money is summed as Decimal and rounded to cents.
"""

from collections import Counter, defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import and_, func, select

from reservations.core.config import get_settings
from reservations.models import Booking, BookingStatus, Guest, Room, RoomStatus
from reservations.schemas.report import (
    BookingStatistics,
    DayOfWeekRevenue,
    DeskBooking,
    FinancialSummary,
    GuestSegmentation,
    OccupancyBucket,
    PeriodRevenue,
    RevenueTrendPoint,
    RoomPerformance,
    RoomStatistics,
    RoomTypeCount,
    RoomTypeRevenue,
    TodaysOperations,
    UpcomingBooking,
    UpcomingDay,
)
from reservations.services.entity_store import EntityStore


ZERO = Decimal("0.00")
CENTS = Decimal("0.01")
PERIODS = ("day", "week", "month")
TREND_PERIODS = PERIODS + ("year",)
TREND_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN, BookingStatus.CHECKED_OUT)
DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# (tier, upper bound exclusive); the last tier is open-ended
FREQUENCY_TIERS = [("first_time", 2), ("occasional", 4), ("frequent", 11), ("vip", None)]
SPENDING_TIERS = [
    ("low", Decimal("5000")),
    ("medium", Decimal("20000")),
    ("high", Decimal("50000")),
    ("premium", None),
]
RECENCY_TIERS = [("active", 30), ("recent", 90), ("occasional", 365), ("inactive", None)]


def bucket_key(day: date, period: str) -> str:
    if period == "week":
        year, week, _ = day.isocalendar()
        return f"{year}-W{week:02d}"
    if period == "month":
        return day.strftime("%Y-%m")
    if period == "year":
        return day.strftime("%Y")
    return day.isoformat()


def period_start(day: date, period: str) -> date:
    if period == "week":
        return day - timedelta(days=day.weekday())
    if period == "month":
        return day.replace(day=1)
    if period == "year":
        return day.replace(month=1, day=1)
    return day


def shift_period(start: date, period: str, count: int) -> date:
    """Move a period start `count` periods forward (negative goes back)."""
    if period == "week":
        return start + timedelta(weeks=count)
    if period == "month":
        months = start.year * 12 + start.month - 1 + count
        return date(months // 12, months % 12 + 1, 1)
    if period == "year":
        return date(start.year + count, 1, 1)
    return start + timedelta(days=count)


def _tier(value, tiers) -> str:
    for name, bound in tiers:
        if bound is None or value < bound:
            return name
    return tiers[-1][0]


def _money(values: Iterable) -> Decimal:
    return sum((Decimal(v) for v in values), ZERO).quantize(CENTS)


def _average(total: Decimal, count: int) -> Decimal:
    return (total / count).quantize(CENTS) if count else ZERO


def _days(start: date, end: date):
    """Dates in [start, end)."""
    for offset in range((end - start).days):
        yield start + timedelta(days=offset)


def _check_period(period: str, allowed=PERIODS) -> None:
    if period not in allowed:
        raise ValueError(f"period must be one of {allowed}")


async def occupancy_report(
    store: EntityStore,
    period: str = "day",
    days: int = 30,
    end_date: Optional[date] = None,
    statuses: Optional[list[str]] = None,
) -> list[OccupancyBucket]:
    """
    Occupancy over the `days` days ending on end_date (inclusive).
    A room is occupied on date D if a counted booking has check_in <= D < check_out.
    The room count comes from the same statement as the bookings, so
    occupied_rooms never exceeds total_rooms.
    """
    _check_period(period)
    if days <= 0:
        return []

    end = (end_date or date.today()) + timedelta(days=1)
    start = end - timedelta(days=days)
    statuses = statuses or get_settings().OCCUPANCY_STATUSES

    rows = await store.rows(
        select(Room.id, Booking)
        .select_from(Room)
        .outerjoin(
            Booking,
            and_(
                Booking.room_id == Room.id,
                Booking.status.in_(statuses),
                Booking.check_in_date < end,
                Booking.check_out_date > start,
            ),
        )
    )
    total_rooms = len({room_id for room_id, _ in rows})
    if not total_rooms:
        return []

    occupied: dict[date, set[int]] = defaultdict(set)
    for room_id, booking in rows:
        if booking is None:
            continue
        for day in _days(max(booking.check_in_date, start), min(booking.check_out_date, end)):
            occupied[day].add(room_id)

    buckets: dict[str, list[date]] = {}
    for day in _days(start, end):
        buckets.setdefault(bucket_key(day, period), []).append(day)

    report = []
    for key, bucket_days in buckets.items():
        counts = [len(occupied[day]) for day in bucket_days]
        room_nights = sum(counts)
        report.append(
            OccupancyBucket(
                date=key,
                occupied_rooms=max(counts),
                total_rooms=total_rooms,
                occupied_room_nights=room_nights,
                occupancy_rate=round(room_nights / (total_rooms * len(bucket_days)), 4),
            )
        )
    return report


async def room_performance(
    store: EntityStore,
    window_days: int = 30,
    as_of: Optional[date] = None,
) -> list[RoomPerformance]:
    """
    Per-room bookings and revenue over all non-cancelled bookings.
    average_occupancy_rate is booked nights inside the trailing window
    [as_of - window_days, as_of) divided by window_days.
    """
    as_of = as_of or date.today()
    window_start = as_of - timedelta(days=window_days)

    rows = await store.rows(
        select(Room, Booking)
        .select_from(Room)
        .outerjoin(Booking, and_(Booking.room_id == Room.id, Booking.status != BookingStatus.CANCELLED))
        .order_by(Room.room_number, Booking.id)
    )
    rooms: dict[int, Room] = {}
    by_room: dict[int, list[Booking]] = defaultdict(list)
    for room, booking in rows:
        rooms[room.id] = room
        if booking is not None:
            by_room[room.id].append(booking)

    report = []
    for room in rooms.values():
        room_bookings = by_room.get(room.id, [])
        revenue = _money(b.total_price for b in room_bookings)
        booked_nights = sum(
            max((min(b.check_out_date, as_of) - max(b.check_in_date, window_start)).days, 0)
            for b in room_bookings
        )
        report.append(
            RoomPerformance(
                room_id=room.id,
                room_number=room.room_number,
                type=room.type,
                price_per_night=room.price_per_night,
                bookings_count=len(room_bookings),
                revenue=revenue,
                checked_out_revenue=_money(
                    b.total_price for b in room_bookings if b.status == BookingStatus.CHECKED_OUT
                ),
                average_rate=_average(revenue, len(room_bookings)),
                average_occupancy_rate=round(booked_nights / window_days, 4) if window_days > 0 else 0.0,
                last_check_in=max((b.check_in_date for b in room_bookings), default=None),
            )
        )

    report.sort(key=lambda r: r.revenue, reverse=True)
    return report


async def financial_summary(
    store: EntityStore,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    period: str = "month",
    include_checked_in: Optional[bool] = None,
) -> FinancialSummary:
    """
    Revenue of bookings checking in within [start_date, end_date] (inclusive,
    either side may be open).
    """
    _check_period(period)
    if include_checked_in is None:
        include_checked_in = get_settings().FINANCIAL_INCLUDE_CHECKED_IN
    statuses = [BookingStatus.CHECKED_OUT]
    if include_checked_in:
        statuses.append(BookingStatus.CHECKED_IN)

    query = select(Booking, Room.type).join(Room, Room.id == Booking.room_id)
    if start_date is not None:
        query = query.where(Booking.check_in_date >= start_date)
    if end_date is not None:
        query = query.where(Booking.check_in_date <= end_date)
    rows = await store.rows(query)

    counted = [(booking, room_type) for booking, room_type in rows if booking.status in statuses]
    cancelled = sum(1 for booking, _ in rows if booking.status == BookingStatus.CANCELLED)

    by_period: dict[str, list[Booking]] = defaultdict(list)
    by_type: dict[str, list[Booking]] = defaultdict(list)
    by_weekday: dict[int, list[Booking]] = defaultdict(list)
    for booking, room_type in counted:
        by_period[bucket_key(booking.check_in_date, period)].append(booking)
        by_type[room_type].append(booking)
        by_weekday[booking.check_in_date.weekday()].append(booking)

    total_revenue = _money(b.total_price for b, _ in counted)
    type_rows = []
    for room_type, items in by_type.items():
        revenue = _money(b.total_price for b in items)
        type_rows.append(RoomTypeRevenue(
            room_type=room_type,
            bookings=len(items),
            revenue=revenue,
            average_rate=_average(revenue, len(items)),
        ))
    type_rows.sort(key=lambda r: r.revenue, reverse=True)

    return FinancialSummary(
        start_date=start_date,
        end_date=end_date,
        statuses=statuses,
        total_revenue=total_revenue,
        total_bookings=len(counted),
        average_booking_value=_average(total_revenue, len(counted)),
        unique_guests=len({b.guest_id for b, _ in counted}),
        cancellation_rate=round(cancelled / len(rows), 4) if rows else 0.0,
        by_period=[
            PeriodRevenue(period=key, bookings=len(items), revenue=_money(b.total_price for b in items))
            for key, items in sorted(by_period.items())
        ],
        by_room_type=type_rows,
        by_day_of_week=[
            DayOfWeekRevenue(
                day=DAY_NAMES[weekday],
                bookings=len(items),
                revenue=_money(b.total_price for b in items),
            )
            for weekday, items in sorted(by_weekday.items())
        ],
    )


async def upcoming_bookings(
    store: EntityStore,
    days: int = 7,
    today: Optional[date] = None,
    statuses: Optional[list[str]] = None,
) -> list[UpcomingDay]:
    """Arrivals in [today, today + days], grouped by check-in date."""
    today = today or date.today()
    statuses = statuses or get_settings().UPCOMING_STATUSES
    bookings = await store.all(
        select(Booking)
        .where(
            Booking.status.in_(statuses),
            Booking.check_in_date >= today,
            Booking.check_in_date <= today + timedelta(days=days),
        )
        .order_by(Booking.check_in_date, Booking.room_id)
    )

    grouped: dict[date, list[Booking]] = {}
    for booking in bookings:
        grouped.setdefault(booking.check_in_date, []).append(booking)

    return [
        UpcomingDay(
            date=day,
            count=len(items),
            total_revenue=_money(b.total_price for b in items),
            bookings=[
                UpcomingBooking(
                    booking_id=b.id,
                    room_id=b.room_id,
                    guest_id=b.guest_id,
                    check_out_date=b.check_out_date,
                    status=b.status,
                    total_price=b.total_price,
                )
                for b in items
            ],
        )
        for day, items in grouped.items()
    ]


async def booking_statistics(store: EntityStore) -> BookingStatistics:
    rows = await store.rows(select(Booking.status, func.count()).group_by(Booking.status))
    by_status = {status: 0 for status in BookingStatus.ALL}
    for status, count in rows:
        by_status[status] = count
    return BookingStatistics(total=sum(by_status.values()), by_status=by_status)


async def revenue_trend(
    store: EntityStore,
    period: str = "month",
    count: int = 6,
    today: Optional[date] = None,
) -> list[RevenueTrendPoint]:
    """
    Revenue per period for the last `count` periods, the current one included.
    Bookings are placed by check-in date. Every period in the window gets a
    point, empty ones with zero revenue, so growth always compares neighbours.
    growth is the percent change from the previous point (100 when the
    previous point had no revenue), None for the first point.
    """
    _check_period(period, TREND_PERIODS)
    if count <= 0:
        return []

    current = period_start(today or date.today(), period)
    first = shift_period(current, period, -(count - 1))
    bookings = await store.all(
        select(Booking).where(
            Booking.status.in_(TREND_STATUSES),
            Booking.check_in_date >= first,
            Booking.check_in_date < shift_period(current, period, 1),
        )
    )

    grouped: dict[str, list[Booking]] = defaultdict(list)
    for booking in bookings:
        grouped[bucket_key(booking.check_in_date, period)].append(booking)

    points = []
    previous: Optional[Decimal] = None
    for offset in range(count):
        key = bucket_key(shift_period(first, period, offset), period)
        items = grouped.get(key, [])
        revenue = _money(b.total_price for b in items)
        if previous is None:
            growth = None
        elif previous == 0:
            growth = 100.0 if revenue > 0 else 0.0
        else:
            growth = float(round((revenue - previous) / previous * 100, 2))
        points.append(
            RevenueTrendPoint(
                period=key,
                bookings=len(items),
                revenue=revenue,
                average_value=_average(revenue, len(items)),
                growth=growth,
            )
        )
        previous = revenue
    return points


def _desk_booking(booking: Booking, room_number: str, guest_name: str) -> DeskBooking:
    return DeskBooking(
        booking_id=booking.id,
        room_id=booking.room_id,
        room_number=room_number,
        guest_id=booking.guest_id,
        guest_name=guest_name,
        check_in_date=booking.check_in_date,
        check_out_date=booking.check_out_date,
        number_of_guests=booking.number_of_guests,
        status=booking.status,
    )


async def todays_operations(store: EntityStore, today: Optional[date] = None) -> TodaysOperations:
    """
    Front-desk view of one day:
      - arrivals: confirmed bookings checking in today
      - departures: confirmed or checked-in bookings checking out today
      - in_house: checked-in bookings with check_in <= today < check_out
    """
    today = today or date.today()
    rows = await store.rows(
        select(Booking, Room.room_number, Guest.full_name)
        .join(Room, Room.id == Booking.room_id)
        .join(Guest, Guest.id == Booking.guest_id)
        .where(
            Booking.status.in_((BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN)),
            Booking.check_in_date <= today,
            Booking.check_out_date >= today,
        )
        .order_by(Room.room_number, Booking.id)
    )

    arrivals, departures, in_house = [], [], []
    for booking, room_number, guest_name in rows:
        entry = _desk_booking(booking, room_number, guest_name)
        if booking.check_in_date == today and booking.status == BookingStatus.CONFIRMED:
            arrivals.append(entry)
        if booking.check_out_date == today:
            departures.append(entry)
        if booking.status == BookingStatus.CHECKED_IN and booking.check_out_date > today:
            in_house.append(entry)

    return TodaysOperations(
        date=today,
        arrivals=arrivals,
        departures=departures,
        in_house=in_house,
        arrivals_count=len(arrivals),
        departures_count=len(departures),
        in_house_count=len(in_house),
    )


async def guest_segmentation(store: EntityStore, today: Optional[date] = None) -> GuestSegmentation:
    """
    Guests bucketed three ways from their non-cancelled bookings:
    frequency (booking count), spending (total price) and recency (days
    since the latest check-in). Guests without bookings land in `none`,
    `low` and `inactive`.
    """
    today = today or date.today()
    rows = await store.rows(
        select(Guest.id, Booking)
        .select_from(Guest)
        .outerjoin(Booking, and_(Booking.guest_id == Guest.id, Booking.status != BookingStatus.CANCELLED))
    )
    by_guest: dict[int, list[Booking]] = {}
    for guest_id, booking in rows:
        bookings = by_guest.setdefault(guest_id, [])
        if booking is not None:
            bookings.append(booking)

    frequency = dict.fromkeys(["none"] + [name for name, _ in FREQUENCY_TIERS], 0)
    spending = dict.fromkeys([name for name, _ in SPENDING_TIERS], 0)
    recency = dict.fromkeys([name for name, _ in RECENCY_TIERS], 0)
    for bookings in by_guest.values():
        spending[_tier(_money(b.total_price for b in bookings), SPENDING_TIERS)] += 1
        if not bookings:
            frequency["none"] += 1
            recency["inactive"] += 1
            continue
        frequency[_tier(len(bookings), FREQUENCY_TIERS)] += 1
        last_check_in = max(b.check_in_date for b in bookings)
        recency[_tier((today - last_check_in).days, RECENCY_TIERS)] += 1

    return GuestSegmentation(
        total_guests=len(by_guest),
        frequency=frequency,
        spending=spending,
        recency=recency,
    )


async def room_statistics(store: EntityStore) -> RoomStatistics:
    """Inventory snapshot: status counts, type distribution and price range."""
    rooms = await store.all(select(Room))
    by_status = {status: 0 for status in RoomStatus.ALL}
    for room in rooms:
        by_status[room.status] = by_status.get(room.status, 0) + 1
    types = Counter(room.type for room in rooms)
    prices = [room.price_per_night for room in rooms]

    return RoomStatistics(
        total_rooms=len(rooms),
        by_status=by_status,
        occupancy_rate=round(by_status[RoomStatus.OCCUPIED] / len(rooms), 4) if rooms else 0.0,
        by_type=[
            RoomTypeCount(type=room_type, count=n)
            for room_type, n in sorted(types.items(), key=lambda item: (-item[1], item[0]))
        ],
        min_price=min(prices, default=None),
        max_price=max(prices, default=None),
        average_price=_average(_money(prices), len(prices)) if prices else None,
    )
