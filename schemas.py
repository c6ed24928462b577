from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models import CategoryType


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: CategoryType


class TransactionIn(BaseModel):
    amount_cents: int = Field(..., gt=0)
    date: datetime
    description: Optional[str] = Field(default=None, max_length=500)
    category_id: int


class TransactionUpdate(BaseModel):
    amount_cents: Optional[int] = Field(default=None, gt=0)
    date: Optional[datetime] = None
    description: Optional[str] = Field(default=None, max_length=500)
    category_id: Optional[int] = None


class BudgetIn(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000)
    amount_cents: int = Field(..., ge=0)
    alert_at: Optional[int] = Field(default=None, ge=0, le=100)


class BudgetUpdate(BaseModel):
    amount_cents: Optional[int] = Field(default=None, ge=0)
    alert_at: Optional[int] = Field(default=None, ge=0, le=100)


class BudgetView(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    month: int
    year: int
    amount_cents: int
    alert_at: int
    spent_cents: int
    remaining_cents: int
    percentage: Decimal
    is_over_budget: bool
    should_alert: bool
    alert_message: Optional[str] = None


class StatsView(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_income_cents: int
    total_expense_cents: int
    balance_cents: int
    transaction_count: int
