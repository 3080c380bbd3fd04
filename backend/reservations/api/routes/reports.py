"""
Report endpoints. Read-only; they run concurrently with any mutation.
The structured payloads are what the export/formatting layer renders.
"""

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from reservations.api.deps import get_store
from reservations.schemas.report import (
    BookingStatistics,
    FinancialSummary,
    GuestSegmentation,
    OccupancyBucket,
    RevenueTrendPoint,
    RoomPerformance,
    RoomStatistics,
    TodaysOperations,
    UpcomingDay,
)
from reservations.services import report_service
from reservations.services.entity_store import EntityStore

router = APIRouter(prefix="/reports", tags=["Reports"])

Period = Literal["day", "week", "month"]
TrendPeriod = Literal["day", "week", "month", "year"]


@router.get("/occupancy", response_model=list[OccupancyBucket])
async def occupancy(
    period: Period = Query("day"),
    days: int = Query(30, ge=1, le=366),
    end_date: Optional[date] = Query(None),
    store: EntityStore = Depends(get_store),
):
    return await report_service.occupancy_report(store, period, days, end_date)


@router.get("/room-performance", response_model=list[RoomPerformance])
async def room_performance(
    window_days: int = Query(30, ge=1, le=366),
    as_of: Optional[date] = Query(None),
    store: EntityStore = Depends(get_store),
):
    return await report_service.room_performance(store, window_days, as_of)


@router.get("/financial", response_model=FinancialSummary)
async def financial(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    period: Period = Query("month"),
    include_checked_in: Optional[bool] = Query(None),
    store: EntityStore = Depends(get_store),
):
    return await report_service.financial_summary(
        store, start_date, end_date, period, include_checked_in
    )


@router.get("/upcoming", response_model=list[UpcomingDay])
async def upcoming(
    days: int = Query(7, ge=0, le=90),
    store: EntityStore = Depends(get_store),
):
    return await report_service.upcoming_bookings(store, days)


@router.get("/booking-statistics", response_model=BookingStatistics)
async def booking_statistics(store: EntityStore = Depends(get_store)):
    return await report_service.booking_statistics(store)


@router.get("/revenue-trend", response_model=list[RevenueTrendPoint])
async def revenue_trend(
    period: TrendPeriod = Query("month"),
    count: int = Query(6, ge=1, le=120),
    store: EntityStore = Depends(get_store),
):
    return await report_service.revenue_trend(store, period, count)


@router.get("/today", response_model=TodaysOperations)
async def todays_operations(
    on: Optional[date] = Query(None, description="Defaults to today"),
    store: EntityStore = Depends(get_store),
):
    return await report_service.todays_operations(store, on)


@router.get("/guest-segmentation", response_model=GuestSegmentation)
async def guest_segmentation(store: EntityStore = Depends(get_store)):
    return await report_service.guest_segmentation(store)


@router.get("/room-statistics", response_model=RoomStatistics)
async def room_statistics(store: EntityStore = Depends(get_store)):
    return await report_service.room_statistics(store)
