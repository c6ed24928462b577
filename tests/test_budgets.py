from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from errors import Conflict, InvalidInput, NotFound
from models import Budget, CategoryType
from schemas import BudgetIn, BudgetUpdate, CategoryIn, TransactionIn
from services import BudgetService, CategoryService, TransactionService, evaluate_budget


def make_session() -> Session:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return Session(engine)


def add_expense(session: Session, user_id: int, category_id: int, cents: int, when):
    TransactionService(session, user_id).create(
        TransactionIn(
            amount_cents=cents, date=when, description="expense", category_id=category_id
        )
    )


def setup_month(session: Session, expense_cents: int, user_id: int = 1):
    categories = CategoryService(session, user_id)
    food = categories.create(CategoryIn(name="Food", type=CategoryType.expense))
    salary = categories.create(CategoryIn(name="Salary", type=CategoryType.income))
    add_expense(session, user_id, food.id, expense_cents, datetime(2025, 1, 10, 12, 0))
    TransactionService(session, user_id).create(
        TransactionIn(
            amount_cents=500_000,
            date=datetime(2025, 1, 1, 9, 0),
            description="Salary",
            category_id=salary.id,
        )
    )
    return food


def test_budget_under_threshold_has_no_alert() -> None:
    with make_session() as session:
        food = setup_month(session, 100_000)
        add_expense(session, 1, food.id, 23_000, datetime(2025, 1, 31, 23, 59))
        # next month, must not count
        add_expense(session, 1, food.id, 99_999, datetime(2025, 2, 1, 0, 0))

        view = BudgetService(session, 1).create(
            BudgetIn(month=1, year=2025, amount_cents=250_000, alert_at=80)
        )

        assert view.spent_cents == 123_000
        assert view.remaining_cents == 127_000
        assert view.percentage == Decimal("49.20")
        assert view.is_over_budget is False
        assert view.should_alert is False
        assert view.alert_message is None


def test_budget_over_threshold_alerts_with_rounded_percentage() -> None:
    with make_session() as session:
        setup_month(session, 210_000)
        view = BudgetService(session, 1).create(
            BudgetIn(month=1, year=2025, amount_cents=250_000, alert_at=80)
        )

        assert view.percentage == Decimal("84.00")
        assert view.should_alert is True
        assert "84%" in view.alert_message
        assert view.is_over_budget is False


def test_budget_overspend_has_negative_remaining() -> None:
    with make_session() as session:
        setup_month(session, 260_000)
        view = BudgetService(session, 1).create(
            BudgetIn(month=1, year=2025, amount_cents=250_000)
        )

        assert view.remaining_cents == -10_000
        assert view.is_over_budget is True
        assert view.should_alert is True


def _budget(amount_cents: int, alert_at: int = 80) -> Budget:
    return Budget(
        id=1, user_id=1, month=1, year=2025, amount_cents=amount_cents, alert_at=alert_at
    )


def test_alert_triggers_exactly_at_threshold() -> None:
    view = evaluate_budget(_budget(100_000, alert_at=80), 80_000)
    assert view.percentage == Decimal("80.00")
    assert view.should_alert is True

    rounds_up = evaluate_budget(_budget(100_000, alert_at=80), 79_999)
    assert rounds_up.percentage == Decimal("80.00")
    assert rounds_up.should_alert is True

    clearly_below = evaluate_budget(_budget(100_000, alert_at=80), 79_990)
    assert clearly_below.percentage == Decimal("79.99")
    assert clearly_below.should_alert is False


def test_spending_exactly_the_budget_is_not_over_budget() -> None:
    view = evaluate_budget(_budget(50_000), 50_000)
    assert view.is_over_budget is False
    assert view.remaining_cents == 0
    assert view.percentage == Decimal("100.00")


def test_percentage_rounds_half_up() -> None:
    assert evaluate_budget(_budget(800), 1).percentage == Decimal("0.13")
    assert evaluate_budget(_budget(300), 200).percentage == Decimal("66.67")
    view = evaluate_budget(_budget(1_000), 845)
    assert view.percentage == Decimal("84.50")
    assert "85%" in view.alert_message


def test_zero_budget_reports_zero_percentage() -> None:
    view = evaluate_budget(_budget(0, alert_at=50), 1_000)
    assert view.percentage == Decimal("0.00")
    assert view.is_over_budget is True
    assert view.should_alert is False


def test_duplicate_budget_for_period_conflicts() -> None:
    with make_session() as session:
        budgets = BudgetService(session, 1)
        budgets.create(BudgetIn(month=3, year=2025, amount_cents=1_000))
        with pytest.raises(Conflict):
            budgets.create(BudgetIn(month=3, year=2025, amount_cents=2_000))

        # same period for a different user is fine
        other = BudgetService(session, 2).create(
            BudgetIn(month=3, year=2025, amount_cents=2_000)
        )
        assert other.user_id == 2
        assert len(budgets.list_all()) == 1


def test_evaluate_missing_budget_and_invalid_month() -> None:
    with make_session() as session:
        budgets = BudgetService(session, 1)
        with pytest.raises(NotFound):
            budgets.evaluate(4, 2025)
        with pytest.raises(InvalidInput):
            budgets.evaluate(13, 2025)


def test_default_alert_threshold_is_eighty() -> None:
    with make_session() as session:
        view = BudgetService(session, 1).create(
            BudgetIn(month=5, year=2025, amount_cents=10_000)
        )
        assert view.alert_at == 80


def test_budget_ignores_other_users_spending() -> None:
    with make_session() as session:
        setup_month(session, 200_000, user_id=2)
        view = BudgetService(session, 1).create(
            BudgetIn(month=1, year=2025, amount_cents=250_000)
        )
        assert view.spent_cents == 0
        assert view.should_alert is False


def test_update_list_current_and_delete() -> None:
    with make_session() as session:
        setup_month(session, 50_000)
        budgets = BudgetService(session, 1)
        budgets.create(BudgetIn(month=12, year=2024, amount_cents=10_000))
        budgets.create(BudgetIn(month=1, year=2025, amount_cents=100_000))

        updated = budgets.update(1, 2025, BudgetUpdate(alert_at=50))
        assert updated.alert_at == 50
        assert updated.amount_cents == 100_000
        assert updated.should_alert is True

        assert [(b.year, b.month) for b in budgets.list_all()] == [
            (2025, 1),
            (2024, 12),
        ]
        assert budgets.current(today=date(2025, 1, 20)).spent_cents == 50_000

        budgets.delete(12, 2024)
        with pytest.raises(NotFound):
            budgets.evaluate(12, 2024)
        with pytest.raises(NotFound):
            budgets.delete(12, 2024)
        with pytest.raises(NotFound):
            budgets.current(today=date(2025, 2, 1))
