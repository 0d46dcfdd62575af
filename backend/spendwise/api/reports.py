from typing import List

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from spendwise.api.auth import get_current_user
from spendwise.database.db_service import get_db_service
from spendwise.database.postgres_db import get_db as get_session
from spendwise.models.schemas import (
    MonthlyBalance,
    ReportSummary,
    CategoryTotal,
    AnnualMonthlyRow,
    AnnualBalanceRow,
    AnnualSummary,
    AllTimeBalanceRow,
    TransactionType,
    User,
)
from spendwise.services import reports

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/monthly-balance/{year}/{month}", response_model=MonthlyBalance)
async def get_monthly_balance(
    year: int = Path(..., ge=2000, le=2100),
    month: int = Path(..., ge=1, le=12),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    return reports.monthly_balance(db, current_user.id, year, month)


@router.get("/summary/{year}/{month}", response_model=ReportSummary)
async def get_report_summary(
    year: int = Path(..., ge=2000, le=2100),
    month: int = Path(..., ge=1, le=12),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    return reports.report_summary(db, current_user.id, year, month)


@router.get("/annual/{transaction_type}/{year}", response_model=List[CategoryTotal])
async def get_annual_report(
    transaction_type: TransactionType,
    year: int = Path(..., ge=2000, le=2100),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Category totals of one transaction type over a year, with percentages."""
    db = get_db_service(session)
    return reports.annual_category_report(db, current_user.id, transaction_type.value, year)


@router.get("/annual-monthly/{transaction_type}/{year}", response_model=List[AnnualMonthlyRow])
async def get_annual_monthly_report(
    transaction_type: TransactionType,
    year: int = Path(..., ge=2000, le=2100),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    return reports.annual_type_monthly(db, current_user.id, transaction_type.value, year)


@router.get("/annual-balance/{year}", response_model=List[AnnualBalanceRow])
async def get_annual_balance(
    year: int = Path(..., ge=2000, le=2100),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    return reports.annual_balance(db, current_user.id, year)


@router.get("/annual-summary/{year}", response_model=AnnualSummary)
async def get_annual_summary(
    year: int = Path(..., ge=2000, le=2100),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    return reports.annual_summary(db, current_user.id, year)


@router.get("/all-time/balance", response_model=List[AllTimeBalanceRow])
async def get_all_time_balance(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    profile = db.find_one("profiles", {"id": current_user.id}) or {}
    return reports.all_time_balance(db, current_user.id, profile.get("initial_balance") or 0.0)
