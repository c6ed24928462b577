import logging
from datetime import datetime

from sqlalchemy import delete
from sqlalchemy.orm import Session

from config import get_settings
from database import init_db, session_scope
from models import Budget, Category, Transaction
from schemas import BudgetIn, TransactionIn
from services import BudgetService, CategoryService, TransactionService

logger = logging.getLogger(__name__)

DEMO_USER_ID = 1

# (category name, amount in cents, date, description)
DEMO_TRANSACTIONS = [
    ("Salary", 300_000, datetime(2026, 1, 1), "January salary"),
    ("Freelance", 50_000, datetime(2026, 1, 15), "Freelance project"),
    ("Housing", 80_000, datetime(2026, 1, 5), "Monthly rent"),
    ("Food", 15_000, datetime(2026, 1, 10), "Supermarket"),
    ("Transport", 5_000, datetime(2026, 1, 12), "Public transport"),
    ("Entertainment", 8_000, datetime(2026, 1, 18), "Cinema and dinner"),
    ("Food", 20_000, datetime(2026, 1, 20), "Groceries, misc."),
]


def seed_demo_data(session: Session, user_id: int = DEMO_USER_ID) -> None:
    """Replace the user's data with a small January 2026 demo month."""
    session.execute(delete(Transaction).where(Transaction.user_id == user_id))
    session.execute(delete(Budget).where(Budget.user_id == user_id))
    session.execute(delete(Category).where(Category.user_id == user_id))
    session.commit()

    categories = CategoryService(session, user_id)
    by_name = {c.name: c for c in categories.seed_defaults()}

    txns = TransactionService(session, user_id)
    for name, amount_cents, when, description in DEMO_TRANSACTIONS:
        txns.create(
            TransactionIn(
                amount_cents=amount_cents,
                date=when,
                description=description,
                category_id=by_name[name].id,
            )
        )

    view = BudgetService(session, user_id).create(
        BudgetIn(month=1, year=2026, amount_cents=250_000, alert_at=80)
    )
    logger.info(
        f"seed_done: user_id={user_id} transactions={len(DEMO_TRANSACTIONS)} "
        f"budget_percentage={view.percentage}"
    )


def main() -> None:
    logging.basicConfig(level=get_settings().log_level)
    init_db()
    with session_scope() as session:
        seed_demo_data(session)


if __name__ == "__main__":
    main()
