"""
Recurring rule scheduling and materialization.

Fixed costs, periodic income and fixed investments describe money that moves
on a schedule. Materialization turns every occurrence that has come due into a
regular transaction tagged with (rule type, rule id, date), so reports only
ever look at the transactions table.

Occurrences are anchored to the rule's start date: the n-th occurrence is
start_date + n steps, never the previous occurrence + 1 step, so a monthly
rule that starts on the 31st falls on the last day of shorter months and
returns to the 31st afterwards.
"""
import logging
import uuid
from datetime import date
from typing import Dict, Any, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import distinct
from sqlalchemy.orm import Session

from spendwise.database.models import (
    FixedCost,
    PeriodicIncome,
    FixedInvestment,
    Transaction,
    TransactionSourceEnum,
)

logger = logging.getLogger(__name__)

FREQUENCY_STEPS = {
    "daily": relativedelta(days=1),
    "weekly": relativedelta(weeks=1),
    "monthly": relativedelta(months=1),
    "yearly": relativedelta(years=1),
}

# rule type -> (model, collection name, generated transaction type)
RULE_KINDS = {
    "fixed_cost": (FixedCost, "fixed_costs", "expense"),
    "periodic_income": (PeriodicIncome, "periodic_income", "income"),
    "fixed_investment": (FixedInvestment, "fixed_investments", "investment"),
}


def _frequency_value(frequency) -> str:
    value = getattr(frequency, "value", frequency)
    if value not in FREQUENCY_STEPS:
        raise ValueError(f"Unknown frequency: {frequency}")
    return value


def occurrence_on(start: date, frequency, n: int) -> date:
    """Return the n-th occurrence (0-based) of a schedule starting at start."""
    return start + FREQUENCY_STEPS[_frequency_value(frequency)] * n


def _estimate_index(start: date, frequency: str, target: date) -> int:
    if frequency == "daily":
        return (target - start).days
    if frequency == "weekly":
        return (target - start).days // 7
    if frequency == "monthly":
        return (target.year - start.year) * 12 + target.month - start.month
    return target.year - start.year


def _first_index_after(start: date, frequency, after: Optional[date]) -> int:
    if after is None or after < start:
        return 0
    frequency = _frequency_value(frequency)
    n = max(_estimate_index(start, frequency, after), 0)
    while n > 0 and occurrence_on(start, frequency, n) > after:
        n -= 1
    while occurrence_on(start, frequency, n) <= after:
        n += 1
    return n


def next_occurrence(start: date, frequency, after: Optional[date] = None) -> date:
    """First occurrence strictly after `after` (the start date when `after` is None)."""
    return occurrence_on(start, frequency, _first_index_after(start, frequency, after))


def due_occurrences(rule, as_of: date, limit: Optional[int] = None) -> List[date]:
    """
    Occurrences of a rule that are due as of a date and not generated yet.

    Args:
        rule: object exposing start_date, end_date, frequency, last_generated_date
        as_of: last day to consider
        limit: maximum number of occurrences to return

    Returns:
        Ascending list of occurrence dates
    """
    horizon = as_of if rule.end_date is None else min(as_of, rule.end_date)
    n = _first_index_after(rule.start_date, rule.frequency, rule.last_generated_date)
    due = []
    while limit is None or len(due) < limit:
        occurrence = occurrence_on(rule.start_date, rule.frequency, n)
        if occurrence > horizon:
            break
        due.append(occurrence)
        n += 1
    return due


def upcoming_occurrence(rule, today: date) -> Optional[date]:
    """Next date the rule would produce a transaction on or after today."""
    if not rule.is_active:
        return None
    after = today - relativedelta(days=1)
    if rule.last_generated_date is not None and rule.last_generated_date > after:
        after = rule.last_generated_date
    occurrence = next_occurrence(rule.start_date, rule.frequency, after)
    if rule.end_date is not None and occurrence > rule.end_date:
        return None
    return occurrence


def resumed_pointer(rule, today: date) -> Optional[date]:
    """
    last_generated_date for a paused rule that is switched back on today.

    Occurrences that fell in the paused window are skipped, so the pointer
    moves to the last occurrence before today (never backwards).
    """
    n = _first_index_after(rule.start_date, rule.frequency, today - relativedelta(days=1))
    if n == 0:
        return rule.last_generated_date
    skipped_to = occurrence_on(rule.start_date, rule.frequency, n - 1)
    if rule.last_generated_date is not None and rule.last_generated_date >= skipped_to:
        return rule.last_generated_date
    return skipped_to


def _lock_active_rules(session: Session, model, user_id: str):
    return (
        session.query(model)
        .filter(model.user_id == user_id, model.is_active.is_(True))
        .order_by(model.start_date, model.id)
        .with_for_update(skip_locked=True)
        .all()
    )


def _existing_dates(session: Session, rule_type: str, rule_id: str, dates: List[date]) -> set:
    rows = (
        session.query(Transaction.date)
        .filter(
            Transaction.recurring_rule_type == rule_type,
            Transaction.recurring_rule_id == rule_id,
            Transaction.date.in_(dates),
        )
        .all()
    )
    return {row[0] for row in rows}


def materialize_rule(session: Session, rule_type: str, rule, as_of: date,
                     limit: Optional[int] = None) -> int:
    """Insert transactions for the rule's due occurrences. Returns how many were created."""
    _, _, transaction_type = RULE_KINDS[rule_type]
    due = due_occurrences(rule, as_of, limit)
    if not due:
        return 0

    already = _existing_dates(session, rule_type, rule.id, due)
    created = 0
    for occurrence in due:
        if occurrence in already:
            continue
        session.add(Transaction(
            id=str(uuid.uuid4()),
            user_id=rule.user_id,
            category_id=rule.category_id,
            amount=rule.amount,
            note=rule.note,
            date=occurrence,
            type=transaction_type,
            source=TransactionSourceEnum.RECURRING.value,
            recurring_rule_type=rule_type,
            recurring_rule_id=rule.id,
        ))
        created += 1

    rule.last_generated_date = due[-1]
    session.flush()
    return created


def generate_for_user(session: Session, user_id: str, as_of: Optional[date] = None,
                      max_backfill: Optional[int] = None) -> Dict[str, Any]:
    """
    Materialize every due occurrence of the user's active rules.

    Rule rows are locked for the duration of the caller's transaction, and the
    caller is responsible for committing.
    """
    if max_backfill is None:
        from spendwise.config import settings
        max_backfill = settings.RECURRING_MAX_BACKFILL
    as_of = as_of or date.today()

    rules_processed = 0
    transactions_created = 0
    for rule_type, (model, _, _) in RULE_KINDS.items():
        for rule in _lock_active_rules(session, model, user_id):
            rules_processed += 1
            transactions_created += materialize_rule(session, rule_type, rule, as_of, max_backfill)

    if transactions_created:
        logger.info(
            "Generated %s recurring transactions for user %s as of %s",
            transactions_created, user_id, as_of,
        )
    return {
        "as_of": as_of,
        "rules_processed": rules_processed,
        "transactions_created": transactions_created,
    }


def users_with_active_rules(session: Session) -> List[str]:
    user_ids = set()
    for model, _, _ in RULE_KINDS.values():
        rows = session.query(distinct(model.user_id)).filter(model.is_active.is_(True)).all()
        user_ids.update(row[0] for row in rows)
    return sorted(user_ids)


def generate_for_all_users(session: Session, as_of: Optional[date] = None,
                           max_backfill: Optional[int] = None) -> Dict[str, Any]:
    """
    Run generate_for_user for every user with an active rule, committing per user.

    A failing user is rolled back and counted in users_failed; the remaining
    users are still processed.
    """
    as_of = as_of or date.today()
    users = users_with_active_rules(session)
    totals = {
        "as_of": as_of,
        "users_processed": 0,
        "users_failed": 0,
        "rules_processed": 0,
        "transactions_created": 0,
    }
    for user_id in users:
        try:
            result = generate_for_user(session, user_id, as_of, max_backfill)
            session.commit()
        except Exception:
            session.rollback()
            totals["users_failed"] += 1
            logger.exception("Recurring generation failed for user %s", user_id)
            continue
        totals["users_processed"] += 1
        totals["rules_processed"] += result["rules_processed"]
        totals["transactions_created"] += result["transactions_created"]

    logger.info(
        "Recurring generation finished: %s users (%s failed), %s rules, %s transactions",
        totals["users_processed"], totals["users_failed"], totals["rules_processed"], totals["transactions_created"],
    )
    return totals
