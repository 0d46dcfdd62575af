"""
Reporting and aggregation over a user's transactions.

Every report is computed from the transactions table; amounts are rounded to
two decimals on output only, so running totals do not accumulate rounding.
"""
import calendar
import logging
from collections import defaultdict, Counter
from datetime import date
from typing import Dict, Any, List, Optional, Tuple

from spendwise.database.db_service import DatabaseService

logger = logging.getLogger(__name__)

TRANSACTION_TYPES = ("income", "expense", "investment")

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def _round(value: float) -> float:
    return round(float(value or 0.0), 2)


def month_name(month: int) -> str:
    return MONTH_NAMES[month - 1]


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def _as_date(value) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def load_transactions(db: DatabaseService, user_id: str, start: Optional[date] = None,
                      end: Optional[date] = None, transaction_type: Optional[str] = None,
                      order_by=None) -> List[Dict[str, Any]]:
    query = {"user_id": user_id}
    if transaction_type:
        query["type"] = transaction_type
    transactions = db.find_between("transactions", query, "date", start, end, order_by=order_by)
    for txn in transactions:
        txn["date"] = _as_date(txn["date"])
    return transactions


def _totals_by_type(transactions: List[Dict[str, Any]]) -> Dict[str, float]:
    totals = {t: 0.0 for t in TRANSACTION_TYPES}
    for txn in transactions:
        totals[txn["type"]] += txn["amount"]
    return totals


def _monthly_totals(transactions: List[Dict[str, Any]]) -> Dict[int, Dict[str, float]]:
    months = {m: {t: 0.0 for t in TRANSACTION_TYPES} for m in range(1, 13)}
    for txn in transactions:
        months[txn["date"].month][txn["type"]] += txn["amount"]
    return months


def with_percentages(rows: List[Dict[str, Any]], amount_key: str) -> List[Dict[str, Any]]:
    """Keep positive rows, sort by amount desc and add each row's share of the total."""
    rows = [r for r in rows if r[amount_key] > 0]
    total = sum(r[amount_key] for r in rows)
    rows.sort(key=lambda r: (-r[amount_key], r.get("category_name") or ""))
    for row in rows:
        row["percentage"] = _round(row[amount_key] / total * 100) if total else 0.0
        row[amount_key] = _round(row[amount_key])
    return rows


def _category_groups(db: DatabaseService, user_id: str,
                     transactions: List[Dict[str, Any]]) -> Dict[Tuple[str, str], Dict[str, Any]]:
    """Sum transactions per (type, category name); uncategorized rows are skipped."""
    categories = db.find_category_map(user_id)
    groups: Dict[Tuple[str, str], Dict[str, Any]] = {}
    for txn in transactions:
        category = categories.get(txn.get("category_id"))
        if category is None:
            continue
        key = (txn["type"], category["name"])
        group = groups.setdefault(key, {
            "category_id": category["id"],
            "category_name": category["name"],
            "category_icon": category["icon"],
            "category_color": category["color"],
            "transaction_type": txn["type"],
            "total_amount": 0.0,
        })
        group["total_amount"] += txn["amount"]
    return groups


# Monthly reports

def monthly_balance(db: DatabaseService, user_id: str, year: int, month: int) -> Dict[str, float]:
    start, end = month_bounds(year, month)
    totals = _totals_by_type(load_transactions(db, user_id, start, end))
    return {
        "total_income": _round(totals["income"]),
        "total_expense": _round(totals["expense"]),
        "total_investment": _round(totals["investment"]),
        "net_balance": _round(totals["income"] - totals["expense"] - totals["investment"]),
    }


def report_summary(db: DatabaseService, user_id: str, year: int, month: int) -> Dict[str, Any]:
    start, end = month_bounds(year, month)
    transactions = load_transactions(db, user_id, start, end)
    totals = _totals_by_type(transactions)
    counts = Counter(txn["type"] for txn in transactions)

    categories = db.find_category_map(user_id)
    usage = Counter(
        categories[txn["category_id"]]["name"]
        for txn in transactions
        if txn.get("category_id") in categories
    )
    most_used = None
    if usage:
        most_used = sorted(usage.items(), key=lambda item: (-item[1], item[0]))[0][0]

    amounts = [txn["amount"] for txn in transactions]
    return {
        "total_expense": _round(totals["expense"]),
        "total_income": _round(totals["income"]),
        "total_investment": _round(totals["investment"]),
        "net_total": _round(totals["income"] - totals["expense"] - totals["investment"]),
        "expense_count": counts.get("expense", 0),
        "income_count": counts.get("income", 0),
        "investment_count": counts.get("investment", 0),
        "most_used_category": most_used,
        "highest_transaction": _round(max(amounts)) if amounts else 0.0,
        "average_transaction": _round(sum(amounts) / len(amounts)) if amounts else 0.0,
    }


def category_summary(db: DatabaseService, user_id: str, year: int, month: int,
                     transaction_type: str) -> List[Dict[str, Any]]:
    start, end = month_bounds(year, month)
    transactions = load_transactions(db, user_id, start, end, transaction_type)
    rows = [
        {"category_name": g["category_name"], "total_amount": g["total_amount"]}
        for g in _category_groups(db, user_id, transactions).values()
    ]
    return with_percentages(rows, "total_amount")


def category_breakdown(db: DatabaseService, user_id: str, year: int, month: int,
                       transaction_type: str) -> List[Dict[str, Any]]:
    return [
        {"category_name": row["category_name"], "amount": row["total_amount"], "percentage": row["percentage"]}
        for row in category_summary(db, user_id, year, month, transaction_type)
    ]


# Annual reports

def annual_category_report(db: DatabaseService, user_id: str, transaction_type: str,
                           year: int) -> List[Dict[str, Any]]:
    transactions = load_transactions(db, user_id, date(year, 1, 1), date(year, 12, 31), transaction_type)
    rows = [
        {"category_name": g["category_name"], "total_amount": g["total_amount"]}
        for g in _category_groups(db, user_id, transactions).values()
    ]
    return with_percentages(rows, "total_amount")


def annual_type_monthly(db: DatabaseService, user_id: str, transaction_type: str,
                        year: int) -> List[Dict[str, Any]]:
    transactions = load_transactions(db, user_id, date(year, 1, 1), date(year, 12, 31), transaction_type)
    months = _monthly_totals(transactions)
    rows = []
    running = 0.0
    for month in range(1, 13):
        amount = months[month][transaction_type]
        running += amount
        rows.append({
            "month_number": month,
            "month_name": month_name(month),
            "monthly_amount": _round(amount),
            "running_total": _round(running),
        })
    return rows


def annual_balance(db: DatabaseService, user_id: str, year: int) -> List[Dict[str, Any]]:
    months = _monthly_totals(load_transactions(db, user_id, date(year, 1, 1), date(year, 12, 31)))
    rows = []
    running = 0.0
    for month in range(1, 13):
        totals = months[month]
        balance = totals["income"] - totals["expense"] - totals["investment"]
        running += balance
        rows.append({
            "month_number": month,
            "month_name": month_name(month),
            "income_amount": _round(totals["income"]),
            "expense_amount": _round(totals["expense"]),
            "investment_amount": _round(totals["investment"]),
            "monthly_balance": _round(balance),
            "running_balance": _round(running),
        })
    return rows


def annual_summary(db: DatabaseService, user_id: str, year: int) -> Dict[str, Any]:
    transactions = load_transactions(db, user_id, date(year, 1, 1), date(year, 12, 31))
    totals = _totals_by_type(transactions)
    months = _monthly_totals(transactions)

    summary = {
        "total_income": _round(totals["income"]),
        "total_expense": _round(totals["expense"]),
        "total_investment": _round(totals["investment"]),
        "net_total": _round(totals["income"] - totals["expense"] - totals["investment"]),
        "total_transactions": len(transactions),
    }
    for transaction_type in TRANSACTION_TYPES:
        active = [(m, months[m][transaction_type]) for m in range(1, 13) if months[m][transaction_type] > 0]
        highest = max(active, key=lambda item: item[1])[0] if active else None
        summary[f"highest_{transaction_type}_month"] = month_name(highest) if highest else None
        summary[f"average_monthly_{transaction_type}"] = (
            _round(sum(amount for _, amount in active) / len(active)) if active else 0.0
        )
    return summary


def annual_transactions(db: DatabaseService, user_id: str, year: int) -> List[Dict[str, Any]]:
    months = _monthly_totals(load_transactions(db, user_id, date(year, 1, 1), date(year, 12, 31)))
    year_totals = {t: sum(months[m][t] for m in months) for t in TRANSACTION_TYPES}
    running = {t: 0.0 for t in TRANSACTION_TYPES}
    rows = []
    for month in range(1, 13):
        row = {"month_number": month, "month_name": month_name(month)}
        for transaction_type in TRANSACTION_TYPES:
            amount = months[month][transaction_type]
            running[transaction_type] += amount
            row[f"{transaction_type}_amount"] = _round(amount)
            row[f"running_{transaction_type}"] = _round(running[transaction_type])
            row[f"year_to_date_{transaction_type}"] = _round(year_totals[transaction_type])
        rows.append(row)
    return rows


def annual_trend(db: DatabaseService, user_id: str, year: int) -> List[Dict[str, Any]]:
    months = _monthly_totals(load_transactions(db, user_id, date(year, 1, 1), date(year, 12, 31)))
    year_totals = {t: sum(months[m][t] for m in months) for t in TRANSACTION_TYPES}
    running = {t: 0.0 for t in TRANSACTION_TYPES}
    rows = []
    for month in range(1, 13):
        row = {"year_number": year, "month_number": month, "month_name": month_name(month)}
        for transaction_type in TRANSACTION_TYPES:
            amount = months[month][transaction_type]
            running[transaction_type] += amount
            row[f"{transaction_type}_amount"] = _round(amount)
            row[f"{transaction_type}_running_total"] = _round(running[transaction_type])
            row[f"{transaction_type}_year_total"] = _round(year_totals[transaction_type])
        rows.append(row)
    return rows


def category_shares(db: DatabaseService, user_id: str, start: Optional[date] = None,
                    end: Optional[date] = None) -> List[Dict[str, Any]]:
    """Category totals with each category's percentage within its own type."""
    groups = _category_groups(db, user_id, load_transactions(db, user_id, start, end))
    by_type = defaultdict(list)
    for group in groups.values():
        by_type[group["transaction_type"]].append({
            "category_name": group["category_name"],
            "category_icon": group["category_icon"],
            "category_color": group["category_color"],
            "total_amount": group["total_amount"],
            "transaction_type": group["transaction_type"],
        })

    rows = []
    for transaction_type in TRANSACTION_TYPES:
        rows.extend(with_percentages(by_type[transaction_type], "total_amount"))
    return rows


def all_time_balance(db: DatabaseService, user_id: str, initial_balance: float = 0.0) -> List[Dict[str, Any]]:
    transactions = load_transactions(db, user_id)
    buckets: Dict[Tuple[int, int], Dict[str, float]] = defaultdict(lambda: {t: 0.0 for t in TRANSACTION_TYPES})
    for txn in transactions:
        buckets[(txn["date"].year, txn["date"].month)][txn["type"]] += txn["amount"]

    rows = []
    cumulative = float(initial_balance or 0.0)
    for (year, month) in sorted(buckets):
        totals = buckets[(year, month)]
        net = totals["income"] - totals["expense"] - totals["investment"]
        cumulative += net
        rows.append({
            "year": year,
            "month": month,
            "month_name": month_name(month),
            "income_amount": _round(totals["income"]),
            "expense_amount": _round(totals["expense"]),
            "investment_amount": _round(totals["investment"]),
            "net_amount": _round(net),
            "initial_balance": _round(initial_balance),
            "cumulative_balance": _round(cumulative),
        })
    return rows


# Trends

def yearly_trends(db: DatabaseService, user_id: str,
                  transaction_type: Optional[str] = None) -> List[Dict[str, Any]]:
    buckets: Dict[Tuple[int, int], List[float]] = defaultdict(list)
    for txn in load_transactions(db, user_id, transaction_type=transaction_type):
        buckets[(txn["date"].year, txn["date"].month)].append(txn["amount"])

    rows = []
    for (year, month) in sorted(buckets, reverse=True):
        amounts = buckets[(year, month)]
        rows.append({
            "year": year,
            "month": month,
            "total_amount": _round(sum(amounts)),
            "transaction_count": len(amounts),
            "average_amount": _round(sum(amounts) / len(amounts)),
        })
    return rows


def category_trends(db: DatabaseService, user_id: str, year: int) -> List[Dict[str, Any]]:
    categories = db.find_category_map(user_id)
    monthly: Dict[str, Dict[int, float]] = defaultdict(lambda: defaultdict(float))
    for txn in load_transactions(db, user_id, date(year, 1, 1), date(year, 12, 31)):
        if txn.get("category_id") in categories:
            monthly[txn["category_id"]][txn["date"].month] += txn["amount"]

    rows = []
    for category_id, months in monthly.items():
        rows.append({
            "category_id": category_id,
            "category_name": categories[category_id]["name"],
            "monthly_amounts": [{"month": m, "amount": _round(months.get(m, 0.0))} for m in range(1, 13)],
        })
    rows.sort(key=lambda r: r["category_name"])
    return rows


def type_trend(db: DatabaseService, user_id: str, transaction_type: str, year: int,
               today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Monthly amounts for one type; months after today are omitted for the current year."""
    today = today or date.today()
    if year < today.year:
        last_month = 12
    elif year == today.year:
        last_month = today.month
    else:
        last_month = 0

    transactions = load_transactions(db, user_id, date(year, 1, 1), date(year, 12, 31), transaction_type)
    months = _monthly_totals(transactions)
    amounts = [months[m][transaction_type] for m in range(1, last_month + 1)]
    year_to_date = sum(amounts)

    rows = []
    running = 0.0
    for month, amount in enumerate(amounts, start=1):
        running += amount
        rows.append({
            "month": month,
            "month_name": month_name(month),
            "amount": _round(amount),
            "running_total": _round(running),
            "year_to_date_total": _round(year_to_date),
        })
    return rows


# Calendar

def calendar_month(db: DatabaseService, user_id: str, year: int, month: int) -> Dict[str, Any]:
    start, end = month_bounds(year, month)
    transactions = load_transactions(db, user_id, start, end)
    categories = db.find_category_map(user_id)
    type_rank = {t: i for i, t in enumerate(TRANSACTION_TYPES)}

    days = {
        start.replace(day=d): {t: 0.0 for t in TRANSACTION_TYPES}
        for d in range(1, end.day + 1)
    }
    active_days = set()
    for txn in transactions:
        days[txn["date"]][txn["type"]] += txn["amount"]
        active_days.add(txn["date"])

    totals = _totals_by_type(transactions)
    transactions.sort(key=lambda t: (t["date"], type_rank[t["type"]], t.get("created_at") or ""))

    return {
        "year": year,
        "month": month,
        "total_income": _round(totals["income"]),
        "total_expense": _round(totals["expense"]),
        "total_investment": _round(totals["investment"]),
        "net_balance": _round(totals["income"] - totals["expense"] - totals["investment"]),
        "days": [
            {
                "date": day,
                "income_amount": _round(amounts["income"]),
                "expense_amount": _round(amounts["expense"]),
                "investment_amount": _round(amounts["investment"]),
                "total_amount": _round(amounts["income"] - amounts["expense"] - amounts["investment"]),
                "has_transactions": day in active_days,
            }
            for day, amounts in days.items()
        ],
        "transactions": [
            {
                "id": txn["id"],
                "category_id": txn.get("category_id"),
                "amount": txn["amount"],
                "note": txn.get("note"),
                "date": txn["date"],
                "type": txn["type"],
                "created_at": txn.get("created_at"),
                "category_name": categories.get(txn.get("category_id"), {}).get("name"),
                "category_icon": categories.get(txn.get("category_id"), {}).get("icon"),
                "category_color": categories.get(txn.get("category_id"), {}).get("color"),
            }
            for txn in transactions
        ],
    }
