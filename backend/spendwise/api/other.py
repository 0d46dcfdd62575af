from typing import List

from fastapi import APIRouter, Depends, Path
from datetime import date
from sqlalchemy.orm import Session

from spendwise.api.auth import get_current_user
from spendwise.database.db_service import get_db_service
from spendwise.database.postgres_db import get_db as get_session
from spendwise.models.schemas import (
    AnnualTransactionsRow,
    AnnualTrendRow,
    CategoryShare,
    AllTimeBalanceRow,
    User,
)
from spendwise.services import reports

# Dashboard rollups consumed by the mobile client
router = APIRouter(prefix="/other", tags=["other"])


@router.get("/annual-transactions/{year}", response_model=List[AnnualTransactionsRow])
async def get_annual_transactions(
    year: int = Path(..., ge=2000, le=2100),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    return reports.annual_transactions(db, current_user.id, year)


@router.get("/annual-trend/{year}", response_model=List[AnnualTrendRow])
async def get_annual_trend(
    year: int = Path(..., ge=2000, le=2100),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    return reports.annual_trend(db, current_user.id, year)


@router.get("/annual-categories/{year}", response_model=List[CategoryShare])
async def get_annual_categories(
    year: int = Path(..., ge=2000, le=2100),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    return reports.category_shares(db, current_user.id, date(year, 1, 1), date(year, 12, 31))


@router.get("/all-time-balance", response_model=List[AllTimeBalanceRow])
async def get_all_time_balance(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    profile = db.find_one("profiles", {"id": current_user.id}) or {}
    return reports.all_time_balance(db, current_user.id, profile.get("initial_balance") or 0.0)


@router.get("/all-time-categories", response_model=List[CategoryShare])
async def get_all_time_categories(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    return reports.category_shares(db, current_user.id)
