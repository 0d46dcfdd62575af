"""
Profile bootstrap: the first authenticated request of an identity user creates
the profile row and seeds the default categories.
"""
import logging
from typing import Dict, Any, List, Optional

from spendwise.database.db_service import DatabaseService, USER_OWNED_COLLECTIONS

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES: Dict[str, List[Dict[str, str]]] = {
    "expense": [
        {"name": "Food", "icon": "food", "color": "#FF9800"},
        {"name": "Transportation", "icon": "transport", "color": "#795548"},
        {"name": "Houseware", "icon": "home", "color": "#4CAF50"},
        {"name": "Bills", "icon": "bill", "color": "#F44336"},
        {"name": "Shopping", "icon": "shopping", "color": "#9C27B0"},
    ],
    "income": [
        {"name": "Salary", "icon": "salary", "color": "#2196F3"},
        {"name": "Freelance", "icon": "freelance", "color": "#8BC34A"},
        {"name": "Bonus", "icon": "bonus", "color": "#00BCD4"},
    ],
    "investment": [
        {"name": "Stocks", "icon": "stocks", "color": "#3F51B5"},
        {"name": "Real Estate", "icon": "real-estate", "color": "#009688"},
        {"name": "Crypto", "icon": "crypto", "color": "#607D8B"},
    ],
}


def seed_default_categories(db: DatabaseService, user_id: str) -> int:
    """Insert the default categories the user does not have yet."""
    existing = {
        (c["type"], c["name"])
        for c in db.find("categories", {"user_id": user_id, "is_default": True})
    }
    created = 0
    for category_type, entries in DEFAULT_CATEGORIES.items():
        for position, entry in enumerate(entries, start=1):
            if (category_type, entry["name"]) in existing:
                continue
            db.insert("categories", {
                "user_id": user_id,
                "type": category_type,
                "is_default": True,
                "display_order": position,
                **entry,
            })
            created += 1
    return created


def ensure_profile(db: DatabaseService, user_id: str, email: Optional[str] = None,
                   name: str = "") -> Dict[str, Any]:
    """Return the user's profile, creating it with default categories if missing."""
    profile = db.find_one("profiles", {"id": user_id})
    if profile:
        return profile

    profile = db.insert("profiles", {
        "id": user_id,
        "name": name,
        "email": email,
        "initial_balance": 0.0,
    })
    created = seed_default_categories(db, user_id)
    logger.info("Created profile %s with %s default categories", user_id, created)
    return profile


def delete_profile_data(db: DatabaseService, user_id: str) -> int:
    """Delete the profile and every row it owns. Returns the number of rows removed."""
    removed = 0
    for collection in USER_OWNED_COLLECTIONS:
        removed += db.delete_many(collection, {"user_id": user_id})
    removed += db.delete("profiles", user_id)
    logger.info("Deleted profile %s (%s rows)", user_id, removed)
    return removed
