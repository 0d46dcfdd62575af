"""
SQLAlchemy ORM Models for PostgreSQL
"""
from sqlalchemy import (
    Column, String, Float, Date, DateTime, ForeignKey, Text, Integer, Boolean,
    Index, UniqueConstraint,
)
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

Base = declarative_base()


class TransactionTypeEnum(str, enum.Enum):
    EXPENSE = "expense"
    INCOME = "income"
    INVESTMENT = "investment"


class FrequencyEnum(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class GoalStatusEnum(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TransactionSourceEnum(str, enum.Enum):
    MANUAL = "manual"
    RECURRING = "recurring"


class Profile(Base):
    """One row per identity-provider user; the id is the provider's user id."""
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=True)
    email = Column(String, nullable=True, index=True)
    theme_color = Column(String, nullable=True)
    initial_balance = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    categories = relationship("Category", back_populates="profile", cascade="all, delete-orphan")
    transactions = relationship("Transaction", back_populates="profile", cascade="all, delete-orphan")
    fixed_costs = relationship("FixedCost", back_populates="profile", cascade="all, delete-orphan")
    periodic_income = relationship("PeriodicIncome", back_populates="profile", cascade="all, delete-orphan")
    fixed_investments = relationship("FixedInvestment", back_populates="profile", cascade="all, delete-orphan")
    financial_goals = relationship("FinancialGoal", back_populates="profile", cascade="all, delete-orphan")


class Category(Base):
    __tablename__ = "categories"

    id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)
    icon = Column(String, nullable=False)
    color = Column(String, nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)
    display_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    profile = relationship("Profile", back_populates="categories")

    __table_args__ = (
        Index("idx_categories_user_type", "user_id", "type"),
    )


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(String, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    amount = Column(Float, nullable=False)
    note = Column(Text, nullable=True)
    date = Column(Date, nullable=False, index=True)
    type = Column(String, nullable=False)

    # Provenance of generated rows; (rule type, rule id, date) is unique so
    # recurring materialization never inserts the same occurrence twice
    source = Column(String, nullable=False, default=TransactionSourceEnum.MANUAL.value)
    recurring_rule_type = Column(String, nullable=True)
    recurring_rule_id = Column(String, nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    profile = relationship("Profile", back_populates="transactions")
    category = relationship("Category")

    __table_args__ = (
        Index("idx_transactions_user_date", "user_id", "date"),
        UniqueConstraint(
            "recurring_rule_type", "recurring_rule_id", "date",
            name="uq_transactions_recurring_occurrence",
        ),
    )


class FixedCost(Base):
    __tablename__ = "fixed_costs"

    id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(String, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Float, nullable=False)
    frequency = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    note = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_generated_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    profile = relationship("Profile", back_populates="fixed_costs")
    category = relationship("Category")


class PeriodicIncome(Base):
    __tablename__ = "periodic_income"

    id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(String, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Float, nullable=False)
    frequency = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    note = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_generated_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    profile = relationship("Profile", back_populates="periodic_income")
    category = relationship("Category")


class FixedInvestment(Base):
    __tablename__ = "fixed_investments"

    id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(String, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Float, nullable=False)
    frequency = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    note = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    expected_return_rate = Column(Float, nullable=True)  # Annual percentage
    investment_type = Column(String, nullable=False)
    last_generated_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    profile = relationship("Profile", back_populates="fixed_investments")
    category = relationship("Category")


class FinancialGoal(Base):
    __tablename__ = "financial_goals"

    id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    target_amount = Column(Float, nullable=False)
    current_amount = Column(Float, nullable=False, default=0.0)
    deadline = Column(Date, nullable=True)
    status = Column(String, nullable=False, default=GoalStatusEnum.IN_PROGRESS.value)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    profile = relationship("Profile", back_populates="financial_goals")


class OtpVerification(Base):
    """Email one-time passcodes; not tied to a profile."""
    __tablename__ = "otp_verifications"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, index=True)
    otp_code = Column(String(6), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_otp_email_code", "email", "otp_code"),
    )
