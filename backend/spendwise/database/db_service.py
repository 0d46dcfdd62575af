"""
Database Service Layer - collection-style access over the ORM models
"""
from typing import List, Optional, Dict, Any, Union, Iterable
from datetime import datetime, date
from sqlalchemy.orm import Session
from sqlalchemy import and_
import enum
import uuid
import logging

from spendwise.database.models import (
    Profile as ProfileModel,
    Category as CategoryModel,
    Transaction as TransactionModel,
    FixedCost as FixedCostModel,
    PeriodicIncome as PeriodicIncomeModel,
    FixedInvestment as FixedInvestmentModel,
    FinancialGoal as FinancialGoalModel,
    OtpVerification as OtpVerificationModel,
)

logger = logging.getLogger(__name__)

# Collection to model mapping
COLLECTION_MODEL_MAP = {
    "profiles": ProfileModel,
    "categories": CategoryModel,
    "transactions": TransactionModel,
    "fixed_costs": FixedCostModel,
    "periodic_income": PeriodicIncomeModel,
    "fixed_investments": FixedInvestmentModel,
    "financial_goals": FinancialGoalModel,
    "otp_verifications": OtpVerificationModel,
}

# Collections whose rows belong to a profile through user_id
USER_OWNED_COLLECTIONS = (
    "transactions",
    "fixed_costs",
    "periodic_income",
    "fixed_investments",
    "financial_goals",
    "categories",
)


class DatabaseService:
    """Database service for PostgreSQL operations."""

    def __init__(self, session: Session):
        """
        Initialize database service.

        Args:
            session: SQLAlchemy session (required)
        """
        if session is None:
            raise ValueError("Session is required")
        self.session = session

    def _model_class(self, collection: str):
        model_class = COLLECTION_MODEL_MAP.get(collection)
        if not model_class:
            raise ValueError(f"Unknown collection: {collection}")
        return model_class

    def _model_to_dict(self, model_instance) -> Optional[Dict[str, Any]]:
        """Convert SQLAlchemy model instance to dictionary."""
        if model_instance is None:
            return None

        result = {}
        for column in model_instance.__table__.columns:
            value = getattr(model_instance, column.name)
            # datetime is a subclass of date, both serialize as ISO strings
            if isinstance(value, date):
                value = value.isoformat()
            elif isinstance(value, enum.Enum):
                value = value.value
            result[column.name] = value
        return result

    def _normalize_values(self, document: Dict[str, Any]) -> Dict[str, Any]:
        return {
            key: (value.value if isinstance(value, enum.Enum) else value)
            for key, value in document.items()
        }

    def _build_query_filters(self, model_class, query: Dict[str, Any]):
        """Build SQLAlchemy filter conditions from query dict.

        List and tuple values match any of their members.
        """
        filters = []
        for key, value in query.items():
            if not hasattr(model_class, key):
                continue
            column = getattr(model_class, key)
            if isinstance(value, (list, tuple, set)):
                filters.append(column.in_(list(value)))
            elif value is None:
                filters.append(column.is_(None))
            else:
                filters.append(column == value)
        return filters

    def _apply_order(self, model_class, q, order_by: Optional[Iterable[str]]):
        """Order by column names; a leading '-' sorts descending."""
        if not order_by:
            return q
        clauses = []
        for entry in order_by:
            descending = entry.startswith("-")
            column = getattr(model_class, entry.lstrip("-"))
            clauses.append(column.desc() if descending else column.asc())
        return q.order_by(*clauses)

    def _query(self, collection: str, query: Optional[Dict[str, Any]]):
        model_class = self._model_class(collection)
        q = self.session.query(model_class)
        if query:
            filters = self._build_query_filters(model_class, query)
            if filters:
                q = q.filter(and_(*filters))
        return model_class, q

    def insert(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a document into the collection."""
        model_class = self._model_class(collection)
        document = self._normalize_values(document)

        if 'id' not in document:
            document['id'] = str(uuid.uuid4())

        if 'created_at' not in document and hasattr(model_class, 'created_at'):
            document['created_at'] = datetime.utcnow()
        if 'updated_at' not in document and hasattr(model_class, 'updated_at'):
            document['updated_at'] = document['created_at']

        instance = model_class(**document)
        self.session.add(instance)
        self.session.flush()

        return self._model_to_dict(instance)

    def find(
        self,
        collection: str,
        query: Optional[Dict[str, Any]] = None,
        order_by: Optional[Iterable[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Find documents matching the query."""
        model_class, q = self._query(collection, query)
        q = self._apply_order(model_class, q, order_by)
        return [self._model_to_dict(r) for r in q.all()]

    def find_between(
        self,
        collection: str,
        query: Dict[str, Any],
        field: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        order_by: Optional[Iterable[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Find documents matching the query whose field lies in [start, end]."""
        model_class, q = self._query(collection, query)
        column = getattr(model_class, field)
        if start is not None:
            q = q.filter(column >= start)
        if end is not None:
            q = q.filter(column <= end)
        q = self._apply_order(model_class, q, order_by)
        return [self._model_to_dict(r) for r in q.all()]

    def find_one(self, collection: str, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Find the first document matching the query."""
        _, q = self._query(collection, query)
        result = q.first()
        return self._model_to_dict(result) if result else None

    def update(self, collection: str, document_id_or_query: Union[str, Dict[str, Any]],
               update_data: Dict[str, Any] = None) -> int:
        """Update documents matching the query."""
        if update_data is None:
            raise ValueError("update_data is required")

        if isinstance(document_id_or_query, str):
            query = {"id": document_id_or_query}
        else:
            query = document_id_or_query

        model_class, q = self._query(collection, query)
        update_data = self._normalize_values(update_data)

        if 'updated_at' not in update_data and hasattr(model_class, 'updated_at'):
            update_data['updated_at'] = datetime.utcnow()

        count = q.update(update_data, synchronize_session=False)
        self.session.flush()
        self.session.expire_all()

        return count

    def delete(self, collection: str, document_id_or_query: Union[str, Dict[str, Any]]) -> int:
        """Delete documents matching the query."""
        if isinstance(document_id_or_query, str):
            query = {"id": document_id_or_query}
        else:
            query = document_id_or_query

        _, q = self._query(collection, query)
        count = q.delete(synchronize_session=False)
        self.session.flush()
        self.session.expire_all()

        return count

    def delete_many(self, collection: str, query: Dict[str, Any]) -> int:
        """Delete multiple documents matching the query."""
        return self.delete(collection, query)

    def count(self, collection: str, query: Optional[Dict[str, Any]] = None) -> int:
        """Count documents matching the query."""
        _, q = self._query(collection, query)
        return q.count()

    def find_category_map(self, user_id: str) -> Dict[str, Dict[str, Any]]:
        """Return the user's categories keyed by id, for embedding in responses."""
        return {c["id"]: c for c in self.find("categories", {"user_id": user_id})}


def get_db_service(session: Session) -> DatabaseService:
    """
    Get database service instance.

    Args:
        session: SQLAlchemy session (required)

    Returns:
        DatabaseService instance
    """
    return DatabaseService(session)
