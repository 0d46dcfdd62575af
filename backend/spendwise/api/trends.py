from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from spendwise.api.auth import get_current_user
from spendwise.database.db_service import get_db_service
from spendwise.database.postgres_db import get_db as get_session
from spendwise.models.schemas import (
    YearlyTrendRow,
    CategoryTrend,
    TypeTrendRow,
    TransactionType,
    User,
)
from spendwise.services import reports

router = APIRouter(prefix="/trends", tags=["trends"])


@router.get("/yearly", response_model=List[YearlyTrendRow])
async def get_yearly_trends(
    transaction_type: Optional[TransactionType] = Query(None, alias="type"),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    return reports.yearly_trends(
        db,
        current_user.id,
        transaction_type.value if transaction_type else None,
    )


@router.get("/category", response_model=List[CategoryTrend])
async def get_category_trends(
    year: int = Query(..., ge=2000, le=2100),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    return reports.category_trends(db, current_user.id, year)


@router.get("/{transaction_type}/{year}", response_model=List[TypeTrendRow])
async def get_type_trend(
    transaction_type: TransactionType,
    year: int = Path(..., ge=2000, le=2100),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Month-by-month amounts for one type, up to the current month."""
    db = get_db_service(session)
    return reports.type_trend(db, current_user.id, transaction_type.value, year)
