from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.orm import Session

from spendwise.api.auth import get_current_user
from spendwise.api.categories import category_ref, load_owned_category
from spendwise.database.db_service import get_db_service
from spendwise.database.postgres_db import get_db as get_session
from spendwise.models.schemas import (
    Transaction,
    TransactionCreate,
    TransactionUpdate,
    CalendarMonth,
    User,
)
from spendwise.services import reports

router = APIRouter(prefix="/transactions", tags=["transactions"])


def _with_category(transaction: dict, categories: dict) -> Transaction:
    return Transaction(**transaction, category=category_ref(categories.get(transaction.get("category_id"))))


def _load_transaction(db, user_id: str, transaction_id: str) -> dict:
    transaction = db.find_one("transactions", {"id": transaction_id, "user_id": user_id})
    if not transaction:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    return transaction


@router.post("", response_model=Transaction, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    transaction: TransactionCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    category = load_owned_category(db, current_user.id, transaction.category_id, transaction.type.value)

    transaction_doc = transaction.model_dump()
    transaction_doc["category_id"] = category["id"]
    transaction_doc["user_id"] = current_user.id
    transaction_doc["source"] = "manual"

    created = db.insert("transactions", transaction_doc)
    session.commit()

    return Transaction(**created, category=category_ref(category))


@router.get("", response_model=List[Transaction])
async def get_transactions(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    categories = db.find_category_map(current_user.id)
    transactions = db.find(
        "transactions",
        {"user_id": current_user.id},
        order_by=["-date", "-created_at"],
    )
    return [_with_category(t, categories) for t in transactions]


@router.get("/date/{transaction_date}", response_model=List[Transaction])
async def get_transactions_by_date(
    transaction_date: date,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    categories = db.find_category_map(current_user.id)
    transactions = db.find(
        "transactions",
        {"user_id": current_user.id, "date": transaction_date},
        order_by=["-created_at"],
    )
    return [_with_category(t, categories) for t in transactions]


@router.get("/calendar/{year}/{month}", response_model=CalendarMonth)
async def get_calendar_month(
    year: int = Path(..., ge=2000, le=2100),
    month: int = Path(..., ge=1, le=12),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    return reports.calendar_month(db, current_user.id, year, month)


@router.get("/{transaction_id}", response_model=Transaction)
async def get_transaction(
    transaction_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    transaction = _load_transaction(db, current_user.id, transaction_id)
    return _with_category(transaction, db.find_category_map(current_user.id))


@router.put("/{transaction_id}", response_model=Transaction)
async def update_transaction(
    transaction_id: str,
    transaction: TransactionUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    _load_transaction(db, current_user.id, transaction_id)
    category = load_owned_category(db, current_user.id, transaction.category_id, transaction.type.value)

    update_data = transaction.model_dump()
    update_data["category_id"] = category["id"]

    db.update("transactions", transaction_id, update_data)
    session.commit()

    updated = _load_transaction(db, current_user.id, transaction_id)
    return Transaction(**updated, category=category_ref(category))


@router.delete("/{transaction_id}")
async def delete_transaction(
    transaction_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    _load_transaction(db, current_user.id, transaction_id)

    db.delete("transactions", transaction_id)
    session.commit()

    return {"message": "Transaction deleted successfully"}
