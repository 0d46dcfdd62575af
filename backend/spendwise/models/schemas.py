from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime, date
from enum import Enum
from uuid import UUID


class TransactionType(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"
    INVESTMENT = "investment"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class GoalStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def _strip_required(value: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError("must not be empty")
    return value


# Authenticated identity

class User(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None


# Profiles

class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    theme_color: Optional[str] = Field(default=None, max_length=32)


class InitialBalanceUpdate(BaseModel):
    initial_balance: float


class Profile(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    theme_color: Optional[str] = None
    initial_balance: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Categories

class CategoryBase(BaseModel):
    name: str = Field(..., max_length=100)
    type: TransactionType
    icon: str = Field(..., max_length=50)
    color: str = Field(..., pattern=r"^#[0-9A-Fa-f]{6}$")

    @field_validator("name", "icon")
    @classmethod
    def _strip_text(cls, value):
        return _strip_required(value)


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    type: Optional[TransactionType] = None
    icon: Optional[str] = Field(default=None, max_length=50)
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")

    @field_validator("name", "icon")
    @classmethod
    def _strip_text(cls, value):
        if value is None:
            return value
        return _strip_required(value)


class Category(BaseModel):
    id: str
    user_id: str
    name: str
    type: TransactionType
    icon: str
    color: str
    is_default: bool = False
    display_order: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CategoryRef(BaseModel):
    """Category fields embedded in transaction and recurring-rule responses."""
    id: str
    name: str
    type: TransactionType
    icon: str
    color: str


class CategoryTotal(BaseModel):
    category_name: str
    total_amount: float
    percentage: float


class CategoryBreakdownItem(BaseModel):
    category_name: str
    amount: float
    percentage: float


# Transactions

class TransactionBase(BaseModel):
    category_id: UUID
    amount: float = Field(..., ge=0)
    note: Optional[str] = Field(default=None, max_length=500)
    date: date
    type: TransactionType


class TransactionCreate(TransactionBase):
    pass


class TransactionUpdate(TransactionBase):
    pass


class Transaction(BaseModel):
    id: str
    user_id: str
    category_id: Optional[str] = None
    amount: float
    note: Optional[str] = None
    date: date
    type: TransactionType
    source: str = "manual"
    recurring_rule_type: Optional[str] = None
    recurring_rule_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    category: Optional[CategoryRef] = None

    class Config:
        from_attributes = True


class CalendarDay(BaseModel):
    date: date
    income_amount: float
    expense_amount: float
    investment_amount: float
    total_amount: float
    has_transactions: bool


class CalendarTransaction(BaseModel):
    id: str
    category_id: Optional[str] = None
    amount: float
    note: Optional[str] = None
    date: date
    type: TransactionType
    created_at: Optional[datetime] = None
    category_name: Optional[str] = None
    category_icon: Optional[str] = None
    category_color: Optional[str] = None


class CalendarMonth(BaseModel):
    year: int
    month: int
    total_income: float
    total_expense: float
    total_investment: float
    net_balance: float
    days: List[CalendarDay]
    transactions: List[CalendarTransaction]


# Recurring rules (fixed costs, periodic income, fixed investments)

class RecurringRuleBase(BaseModel):
    category_id: Optional[UUID] = None
    amount: float = Field(..., ge=0.01)
    frequency: Frequency
    start_date: date
    end_date: Optional[date] = None
    note: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = True

    @model_validator(mode="after")
    def _check_date_range(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class RecurringRuleUpdate(BaseModel):
    category_id: Optional[UUID] = None
    amount: Optional[float] = Field(default=None, ge=0.01)
    frequency: Optional[Frequency] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    note: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def _check_date_range(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class RecurringRule(BaseModel):
    id: str
    user_id: str
    category_id: Optional[str] = None
    amount: float
    frequency: Frequency
    start_date: date
    end_date: Optional[date] = None
    note: Optional[str] = None
    is_active: bool = True
    last_generated_date: Optional[date] = None
    next_occurrence: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    category: Optional[CategoryRef] = None

    class Config:
        from_attributes = True


class FixedCostCreate(RecurringRuleBase):
    pass


class FixedCostUpdate(RecurringRuleUpdate):
    pass


class FixedCost(RecurringRule):
    pass


class PeriodicIncomeCreate(RecurringRuleBase):
    pass


class PeriodicIncomeUpdate(RecurringRuleUpdate):
    pass


class PeriodicIncome(RecurringRule):
    pass


class FixedInvestmentCreate(RecurringRuleBase):
    expected_return_rate: Optional[float] = Field(default=None, ge=-100, le=1000)
    investment_type: str = Field(..., max_length=100)

    @field_validator("investment_type")
    @classmethod
    def _strip_investment_type(cls, value):
        return _strip_required(value)


class FixedInvestmentUpdate(RecurringRuleUpdate):
    expected_return_rate: Optional[float] = Field(default=None, ge=-100, le=1000)
    investment_type: Optional[str] = Field(default=None, max_length=100)

    @field_validator("investment_type")
    @classmethod
    def _strip_investment_type(cls, value):
        if value is None:
            return value
        return _strip_required(value)


class FixedInvestment(RecurringRule):
    expected_return_rate: Optional[float] = None
    investment_type: str


class RecurringGenerationResult(BaseModel):
    as_of: date
    rules_processed: int
    transactions_created: int


# Financial goals

class FinancialGoalBase(BaseModel):
    name: str = Field(..., max_length=100)
    target_amount: float = Field(..., ge=0.01)
    current_amount: float = Field(default=0.0, ge=0)
    deadline: Optional[date] = None
    status: GoalStatus = GoalStatus.IN_PROGRESS

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value):
        return _strip_required(value)


class FinancialGoalCreate(FinancialGoalBase):
    pass


class FinancialGoalUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    target_amount: Optional[float] = Field(default=None, ge=0.01)
    current_amount: Optional[float] = Field(default=None, ge=0)
    deadline: Optional[date] = None
    status: Optional[GoalStatus] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value):
        if value is None:
            return value
        return _strip_required(value)


class FinancialGoal(FinancialGoalBase):
    id: str
    user_id: str
    progress_percentage: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Reports

class MonthlyBalance(BaseModel):
    total_income: float
    total_expense: float
    total_investment: float
    net_balance: float


class ReportSummary(BaseModel):
    total_expense: float
    total_income: float
    total_investment: float
    net_total: float
    expense_count: int
    income_count: int
    investment_count: int
    most_used_category: Optional[str] = None
    highest_transaction: float
    average_transaction: float


class AnnualMonthlyRow(BaseModel):
    month_number: int
    month_name: str
    monthly_amount: float
    running_total: float


class AnnualBalanceRow(BaseModel):
    month_number: int
    month_name: str
    income_amount: float
    expense_amount: float
    investment_amount: float
    monthly_balance: float
    running_balance: float


class AnnualSummary(BaseModel):
    total_income: float
    total_expense: float
    total_investment: float
    net_total: float
    highest_income_month: Optional[str] = None
    highest_expense_month: Optional[str] = None
    highest_investment_month: Optional[str] = None
    total_transactions: int
    average_monthly_income: float
    average_monthly_expense: float
    average_monthly_investment: float


class AnnualTransactionsRow(BaseModel):
    month_number: int
    month_name: str
    income_amount: float
    expense_amount: float
    investment_amount: float
    running_income: float
    running_expense: float
    running_investment: float
    year_to_date_income: float
    year_to_date_expense: float
    year_to_date_investment: float


class AnnualTrendRow(BaseModel):
    year_number: int
    month_number: int
    month_name: str
    income_amount: float
    income_running_total: float
    income_year_total: float
    expense_amount: float
    expense_running_total: float
    expense_year_total: float
    investment_amount: float
    investment_running_total: float
    investment_year_total: float


class CategoryShare(BaseModel):
    category_name: str
    category_icon: Optional[str] = None
    category_color: Optional[str] = None
    total_amount: float
    percentage: float
    transaction_type: TransactionType


class AllTimeBalanceRow(BaseModel):
    year: int
    month: int
    month_name: str
    income_amount: float
    expense_amount: float
    investment_amount: float
    net_amount: float
    initial_balance: float
    cumulative_balance: float


class YearlyTrendRow(BaseModel):
    year: int
    month: int
    total_amount: float
    transaction_count: int
    average_amount: float


class MonthlyAmount(BaseModel):
    month: int
    amount: float


class CategoryTrend(BaseModel):
    category_id: Optional[str] = None
    category_name: str
    monthly_amounts: List[MonthlyAmount]


class TypeTrendRow(BaseModel):
    month: int
    month_name: str
    amount: float
    running_total: float
    year_to_date_total: float


# One-time passcodes

class OtpRequest(BaseModel):
    email: EmailStr


class OtpVerify(BaseModel):
    email: EmailStr
    otp: str = Field(..., pattern=r"^\d{6}$")


class MessageResponse(BaseModel):
    message: str
