from typing import List, Optional, Dict, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from spendwise.api.auth import get_current_user
from spendwise.database.db_service import DatabaseService, get_db_service
from spendwise.database.postgres_db import get_db as get_session
from spendwise.models.schemas import (
    Category,
    CategoryCreate,
    CategoryUpdate,
    CategoryTotal,
    CategoryBreakdownItem,
    TransactionType,
    User,
)
from spendwise.services import reports

router = APIRouter(prefix="/categories", tags=["categories"])

TYPE_ORDER = {"expense": 0, "income": 1, "investment": 2}


def category_ref(category: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Subset of a category embedded in transaction and recurring-rule responses."""
    if not category:
        return None
    return {key: category[key] for key in ("id", "name", "type", "icon", "color")}


def load_owned_category(db: DatabaseService, user_id: str, category_id,
                        expected_type: Optional[str] = None) -> Dict[str, Any]:
    """Fetch a category owned by the user, optionally checking its type."""
    category = db.find_one("categories", {"id": str(category_id), "user_id": user_id})
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    if expected_type is not None and category["type"] != expected_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Category type '{category['type']}' does not match '{expected_type}'"
        )
    return category


def _load_custom_category(db: DatabaseService, user_id: str, category_id: str) -> Dict[str, Any]:
    category = db.find_one("categories", {"id": category_id, "user_id": user_id, "is_default": False})
    if not category:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Category not found or cannot be modified"
        )
    return category


@router.get("", response_model=List[Category])
async def get_categories(
    category_type: Optional[TransactionType] = Query(None, alias="type"),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    query = {"user_id": current_user.id}
    if category_type:
        query["type"] = category_type.value

    categories = db.find("categories", query)
    categories.sort(key=lambda c: (TYPE_ORDER.get(c["type"], 99), c["display_order"], c["name"].lower()))
    return [Category(**c) for c in categories]


@router.post("", response_model=Category, status_code=status.HTTP_201_CREATED)
async def create_category(
    category: CategoryCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)

    siblings = db.find("categories", {"user_id": current_user.id, "type": category.type.value})
    category_doc = {
        **category.model_dump(),
        "user_id": current_user.id,
        "is_default": False,
        "display_order": max((c["display_order"] for c in siblings), default=0) + 1,
    }

    created = db.insert("categories", category_doc)
    session.commit()

    return Category(**created)


@router.get("/summary", response_model=List[CategoryTotal])
async def get_category_summary(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    category_type: TransactionType = Query(..., alias="type"),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    return reports.category_summary(db, current_user.id, year, month, category_type.value)


@router.get("/breakdown", response_model=List[CategoryBreakdownItem])
async def get_category_breakdown(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    category_type: TransactionType = Query(..., alias="type"),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    return reports.category_breakdown(db, current_user.id, year, month, category_type.value)


@router.put("/{category_id}", response_model=Category)
async def update_category(
    category_id: str,
    category: CategoryUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    existing = _load_custom_category(db, current_user.id, category_id)

    update_data = category.model_dump(exclude_unset=True, exclude_none=True)
    new_type = update_data.get("type")
    if new_type and new_type != existing["type"]:
        # Recurring rules generate transactions of a fixed type
        in_use = sum(
            db.count(collection, {"user_id": current_user.id, "category_id": category_id})
            for collection in ("transactions", "fixed_costs", "periodic_income", "fixed_investments")
        )
        if in_use:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot change the type of a category that is in use"
            )

    if update_data:
        db.update("categories", category_id, update_data)
        session.commit()

    return Category(**db.find_one("categories", {"id": category_id}))


@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    db = get_db_service(session)
    _load_custom_category(db, current_user.id, category_id)

    # Transactions and recurring rules outlive the category
    for collection in ("transactions", "fixed_costs", "periodic_income", "fixed_investments"):
        db.update(collection, {"user_id": current_user.id, "category_id": category_id}, {"category_id": None})
    db.delete("categories", category_id)
    session.commit()

    return {"message": "Category deleted successfully"}
