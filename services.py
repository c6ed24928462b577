from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from config import get_settings
from csv_utils import render_transaction_report
from errors import Conflict, Forbidden, InvalidInput, NotFound
from models import Budget, Category, CategoryType, Transaction
from periods import DateRange, month_range, resolve_filter
from schemas import (
    BudgetIn,
    BudgetUpdate,
    BudgetView,
    CategoryIn,
    StatsView,
    TransactionIn,
    TransactionUpdate,
)

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES: tuple[tuple[str, CategoryType], ...] = (
    ("Salary", CategoryType.income),
    ("Freelance", CategoryType.income),
    ("Investments", CategoryType.income),
    ("Other income", CategoryType.income),
    ("Food", CategoryType.expense),
    ("Transport", CategoryType.expense),
    ("Housing", CategoryType.expense),
    ("Utilities", CategoryType.expense),
    ("Entertainment", CategoryType.expense),
    ("Health", CategoryType.expense),
    ("Education", CategoryType.expense),
    ("Other expenses", CategoryType.expense),
)

_HUNDREDTHS = Decimal("0.01")


@dataclass(frozen=True)
class TypeTotals:
    income_cents: int = 0
    expense_cents: int = 0
    count: int = 0

    @property
    def balance_cents(self) -> int:
        return self.income_cents - self.expense_cents


def aggregate_totals(
    session: Session, user_id: int, date_range: Optional[DateRange] = None
) -> TypeTotals:
    """
    Sum a user's transaction amounts per category type.

    The bounds of ``date_range`` are inclusive; ``None`` covers all time.
    """
    stmt = (
        select(
            Category.type,
            func.coalesce(func.sum(Transaction.amount_cents), 0).label("total_cents"),
            func.count(Transaction.id).label("txn_count"),
        )
        .select_from(Transaction)
        .join(Category, Transaction.category_id == Category.id)
        .where(Transaction.user_id == user_id)
        .group_by(Category.type)
    )
    if date_range is not None:
        stmt = stmt.where(Transaction.date.between(date_range.start, date_range.end))

    income = 0
    expense = 0
    count = 0
    for row in session.execute(stmt):
        if row.type == CategoryType.income:
            income = int(row.total_cents or 0)
        else:
            expense = int(row.total_cents or 0)
        count += int(row.txn_count or 0)
    return TypeTotals(income_cents=income, expense_cents=expense, count=count)


def expense_total(session: Session, user_id: int, date_range: DateRange) -> int:
    return aggregate_totals(session, user_id, date_range).expense_cents


def percentage_of(spent_cents: int, amount_cents: int) -> Decimal:
    if amount_cents <= 0:
        return Decimal("0.00")
    raw = Decimal(spent_cents) * 100 / Decimal(amount_cents)
    return raw.quantize(_HUNDREDTHS, rounding=ROUND_HALF_UP)


def evaluate_budget(budget: Budget, spent_cents: int) -> BudgetView:
    percentage = percentage_of(spent_cents, budget.amount_cents)
    should_alert = percentage >= budget.alert_at
    alert_message = None
    if should_alert:
        rounded = int(percentage.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        alert_message = f"You have reached {rounded}% of your budget"
    return BudgetView(
        id=budget.id,
        user_id=budget.user_id,
        month=budget.month,
        year=budget.year,
        amount_cents=budget.amount_cents,
        alert_at=budget.alert_at,
        spent_cents=spent_cents,
        remaining_cents=budget.amount_cents - spent_cents,
        percentage=percentage,
        is_over_budget=spent_cents > budget.amount_cents,
        should_alert=should_alert,
        alert_message=alert_message,
    )


class CategoryService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def list_all(self) -> list[Category]:
        stmt = (
            select(Category)
            .where(Category.user_id == self.user_id)
            .order_by(Category.type, Category.name)
        )
        return self.session.scalars(stmt).all()

    def get(self, category_id: int) -> Category:
        category = self.session.get(Category, category_id)
        if not category:
            raise NotFound("Category not found")
        if category.user_id != self.user_id:
            raise Forbidden("Category belongs to another user")
        return category

    def create(self, data: CategoryIn) -> Category:
        name = data.name.strip()
        existing = self.session.scalar(
            select(Category).where(
                Category.user_id == self.user_id,
                Category.type == data.type,
                func.lower(Category.name) == name.lower(),
            )
        )
        if existing:
            raise Conflict("Category with this name already exists")
        category = Category(user_id=self.user_id, name=name, type=data.type)
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        return category

    def seed_defaults(self) -> list[Category]:
        """Create the starter categories a newly registered user gets."""
        existing = {(c.type, c.name.lower()) for c in self.list_all()}
        created = []
        for name, category_type in DEFAULT_CATEGORIES:
            if (category_type, name.lower()) in existing:
                continue
            category = Category(user_id=self.user_id, name=name, type=category_type)
            self.session.add(category)
            created.append(category)
        self.session.commit()
        logger.info(
            f"categories_seeded: user_id={self.user_id} created={len(created)}"
        )
        return created

    def delete(self, category_id: int) -> None:
        category = self.get(category_id)
        in_use = self.session.scalar(
            select(func.count(Transaction.id)).where(
                Transaction.category_id == category.id
            )
        )
        if in_use:
            raise Conflict("Category still has transactions")
        self.session.delete(category)
        self.session.commit()


class TransactionService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id
        self.categories = CategoryService(session, user_id)

    def create(self, data: TransactionIn) -> Transaction:
        category = self.categories.get(data.category_id)
        txn = Transaction(
            user_id=self.user_id,
            category_id=category.id,
            amount_cents=data.amount_cents,
            date=data.date,
            description=data.description,
        )
        self.session.add(txn)
        self.session.commit()
        self.session.refresh(txn)
        logger.info(
            f"transaction_created: user_id={self.user_id} id={txn.id} "
            f"type={category.type.value} amount_cents={txn.amount_cents}"
        )
        return txn

    def get(self, transaction_id: int) -> Transaction:
        txn = self.session.get(
            Transaction, transaction_id, options=[joinedload(Transaction.category)]
        )
        if not txn:
            raise NotFound("Transaction not found")
        if txn.user_id != self.user_id:
            raise Forbidden("Transaction belongs to another user")
        return txn

    def update(self, transaction_id: int, data: TransactionUpdate) -> Transaction:
        txn = self.get(transaction_id)
        if data.category_id is not None:
            txn.category_id = self.categories.get(data.category_id).id
        if data.amount_cents is not None:
            txn.amount_cents = data.amount_cents
        if data.date is not None:
            txn.date = data.date
        if "description" in data.model_fields_set:
            txn.description = data.description
        self.session.commit()
        self.session.refresh(txn)
        return txn

    def delete(self, transaction_id: int) -> None:
        txn = self.get(transaction_id)
        self.session.delete(txn)
        self.session.commit()
        logger.info(f"transaction_deleted: user_id={self.user_id} id={transaction_id}")

    def list(
        self, month: Optional[int] = None, year: Optional[int] = None
    ) -> list[Transaction]:
        date_range = resolve_filter(month, year)
        stmt = (
            select(Transaction)
            .options(joinedload(Transaction.category))
            .where(Transaction.user_id == self.user_id)
            .order_by(Transaction.date.desc(), Transaction.id.desc())
        )
        if date_range is not None:
            stmt = stmt.where(Transaction.date.between(date_range.start, date_range.end))
        return self.session.scalars(stmt).all()

    def all_for_period(
        self, date_range: DateRange, *, ascending: bool = True
    ) -> list[Transaction]:
        if ascending:
            order = (Transaction.date.asc(), Transaction.id.asc())
        else:
            order = (Transaction.date.desc(), Transaction.id.desc())
        stmt = (
            select(Transaction)
            .options(joinedload(Transaction.category))
            .where(
                Transaction.user_id == self.user_id,
                Transaction.date.between(date_range.start, date_range.end),
            )
            .order_by(*order)
        )
        return self.session.scalars(stmt).all()


class StatsService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def stats(
        self, month: Optional[int] = None, year: Optional[int] = None
    ) -> StatsView:
        totals = aggregate_totals(
            self.session, self.user_id, resolve_filter(month, year)
        )
        return StatsView(
            total_income_cents=totals.income_cents,
            total_expense_cents=totals.expense_cents,
            balance_cents=totals.balance_cents,
            transaction_count=totals.count,
        )


class ReportService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id
        self.txn_service = TransactionService(session, user_id)

    def export_csv(self, month: Optional[int], year: Optional[int]) -> str:
        if not month or not year:
            raise InvalidInput("Both month and year are required")
        date_range = month_range(month, year)
        transactions = self.txn_service.all_for_period(date_range)
        if not transactions:
            raise NotFound(f"No transactions for {month}/{year}")
        logger.info(
            f"report_exported: user_id={self.user_id} period={year}-{month:02d} "
            f"rows={len(transactions)}"
        )
        return render_transaction_report(transactions)


class BudgetService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def _find(self, month: int, year: int) -> Optional[Budget]:
        return self.session.scalar(
            select(Budget).where(
                Budget.user_id == self.user_id,
                Budget.month == month,
                Budget.year == year,
            )
        )

    def _get(self, month: int, year: int) -> Budget:
        if month < 1 or month > 12:
            raise InvalidInput("Month must be between 1 and 12")
        budget = self._find(month, year)
        if not budget:
            raise NotFound(f"No budget for {month}/{year}")
        return budget

    def _view(self, budget: Budget) -> BudgetView:
        spent = expense_total(
            self.session, self.user_id, month_range(budget.month, budget.year)
        )
        return evaluate_budget(budget, spent)

    def create(self, data: BudgetIn) -> BudgetView:
        alert_at = data.alert_at
        if alert_at is None:
            alert_at = get_settings().default_alert_at
        budget = Budget(
            user_id=self.user_id,
            month=data.month,
            year=data.year,
            amount_cents=data.amount_cents,
            alert_at=alert_at,
        )
        self.session.add(budget)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise Conflict(
                f"A budget for {data.month}/{data.year} already exists"
            ) from exc
        self.session.refresh(budget)
        logger.info(
            f"budget_created: user_id={self.user_id} period={data.year}-{data.month:02d} "
            f"amount_cents={data.amount_cents} alert_at={alert_at}"
        )
        return self._view(budget)

    def list_all(self) -> list[BudgetView]:
        stmt = (
            select(Budget)
            .where(Budget.user_id == self.user_id)
            .order_by(Budget.year.desc(), Budget.month.desc())
        )
        return [self._view(budget) for budget in self.session.scalars(stmt)]

    def evaluate(self, month: int, year: int) -> BudgetView:
        return self._view(self._get(month, year))

    def current(self, today: Optional[date] = None) -> BudgetView:
        if today is None:
            today = datetime.now(ZoneInfo(get_settings().timezone)).date()
        return self.evaluate(today.month, today.year)

    def update(self, month: int, year: int, data: BudgetUpdate) -> BudgetView:
        budget = self._get(month, year)
        if data.amount_cents is not None:
            budget.amount_cents = data.amount_cents
        if data.alert_at is not None:
            budget.alert_at = data.alert_at
        self.session.commit()
        self.session.refresh(budget)
        return self._view(budget)

    def delete(self, month: int, year: int) -> None:
        budget = self._get(month, year)
        self.session.delete(budget)
        self.session.commit()
        logger.info(
            f"budget_deleted: user_id={self.user_id} period={year}-{month:02d}"
        )
