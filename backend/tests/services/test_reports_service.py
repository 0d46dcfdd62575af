from datetime import date

import pytest

from spendwise.database.db_service import get_db_service
from spendwise.services import reports
from spendwise.services.profiles import ensure_profile

USER_ID = "report-user"


@pytest.fixture
def db(session):
    service = get_db_service(session)
    ensure_profile(service, USER_ID)
    session.commit()
    return service


@pytest.fixture
def cats(db):
    return {c["name"]: c["id"] for c in db.find("categories", {"user_id": USER_ID})}


def _add(db, cats, category, amount, day, txn_type):
    return db.insert("transactions", {
        "user_id": USER_ID,
        "category_id": cats[category] if category else None,
        "amount": amount,
        "date": day,
        "type": txn_type,
    })


def test_monthly_balance(db, cats):
    _add(db, cats, "Salary", 3000, date(2024, 3, 1), "income")
    _add(db, cats, "Food", 120.25, date(2024, 3, 5), "expense")
    _add(db, cats, "Stocks", 500, date(2024, 3, 20), "investment")
    _add(db, cats, "Food", 999, date(2024, 4, 1), "expense")

    assert reports.monthly_balance(db, USER_ID, 2024, 3) == {
        "total_income": 3000.0,
        "total_expense": 120.25,
        "total_investment": 500.0,
        "net_balance": 2379.75,
    }


def test_with_percentages_drops_zero_rows_and_sorts():
    rows = reports.with_percentages(
        [
            {"category_name": "A", "total_amount": 25.0},
            {"category_name": "B", "total_amount": 75.0},
            {"category_name": "C", "total_amount": 0.0},
        ],
        "total_amount",
    )
    assert rows == [
        {"category_name": "B", "total_amount": 75.0, "percentage": 75.0},
        {"category_name": "A", "total_amount": 25.0, "percentage": 25.0},
    ]


def test_category_summary_groups_by_category(db, cats):
    _add(db, cats, "Food", 30, date(2024, 5, 2), "expense")
    _add(db, cats, "Food", 30, date(2024, 5, 9), "expense")
    _add(db, cats, "Bills", 40, date(2024, 5, 10), "expense")
    _add(db, cats, None, 1000, date(2024, 5, 11), "expense")
    _add(db, cats, "Salary", 5000, date(2024, 5, 1), "income")

    summary = reports.category_summary(db, USER_ID, 2024, 5, "expense")
    assert summary == [
        {"category_name": "Food", "total_amount": 60.0, "percentage": 60.0},
        {"category_name": "Bills", "total_amount": 40.0, "percentage": 40.0},
    ]
    breakdown = reports.category_breakdown(db, USER_ID, 2024, 5, "expense")
    assert breakdown[0] == {"category_name": "Food", "amount": 60.0, "percentage": 60.0}


def test_annual_balance_running_totals(db, cats):
    _add(db, cats, "Salary", 1000, date(2023, 1, 15), "income")
    _add(db, cats, "Food", 300, date(2023, 1, 20), "expense")
    _add(db, cats, "Food", 200, date(2023, 3, 3), "expense")

    rows = reports.annual_balance(db, USER_ID, 2023)
    assert len(rows) == 12
    assert rows[0]["monthly_balance"] == 700.0
    assert rows[1]["running_balance"] == 700.0
    assert rows[2]["monthly_balance"] == -200.0
    assert rows[11]["running_balance"] == 500.0
    assert rows[2]["month_name"] == "March"


def test_annual_summary(db, cats):
    _add(db, cats, "Salary", 1000, date(2023, 1, 15), "income")
    _add(db, cats, "Bonus", 3000, date(2023, 6, 15), "income")
    _add(db, cats, "Food", 50, date(2023, 6, 16), "expense")

    summary = reports.annual_summary(db, USER_ID, 2023)
    assert summary["total_income"] == 4000.0
    assert summary["highest_income_month"] == "June"
    assert summary["highest_investment_month"] is None
    assert summary["average_monthly_income"] == 2000.0
    assert summary["total_transactions"] == 3


def test_type_trend_cuts_off_at_current_month(db, cats):
    _add(db, cats, "Food", 10, date(2025, 1, 5), "expense")
    _add(db, cats, "Food", 20, date(2025, 2, 5), "expense")
    _add(db, cats, "Food", 40, date(2025, 5, 5), "expense")

    rows = reports.type_trend(db, USER_ID, "expense", 2025, today=date(2025, 2, 14))
    assert [r["month"] for r in rows] == [1, 2]
    assert rows[1]["running_total"] == 30.0
    assert all(r["year_to_date_total"] == 30.0 for r in rows)

    full = reports.type_trend(db, USER_ID, "expense", 2025, today=date(2026, 1, 1))
    assert len(full) == 12
    assert full[-1]["running_total"] == 70.0

    assert reports.type_trend(db, USER_ID, "expense", 2027, today=date(2026, 1, 1)) == []


def test_all_time_balance_starts_from_initial_balance(db, cats):
    _add(db, cats, "Salary", 100, date(2022, 12, 1), "income")
    _add(db, cats, "Food", 30, date(2023, 2, 1), "expense")

    rows = reports.all_time_balance(db, USER_ID, initial_balance=50.0)
    assert [(r["year"], r["month"]) for r in rows] == [(2022, 12), (2023, 2)]
    assert rows[0]["cumulative_balance"] == 150.0
    assert rows[1]["cumulative_balance"] == 120.0
    assert rows[1]["initial_balance"] == 50.0


def test_category_shares_percentage_within_type(db, cats):
    _add(db, cats, "Food", 25, date(2024, 1, 1), "expense")
    _add(db, cats, "Bills", 75, date(2024, 1, 2), "expense")
    _add(db, cats, "Salary", 10, date(2024, 1, 3), "income")

    rows = reports.category_shares(db, USER_ID)
    income = [r for r in rows if r["transaction_type"] == "income"]
    expense = [r for r in rows if r["transaction_type"] == "expense"]
    assert income == [{
        "category_name": "Salary", "category_icon": "salary", "category_color": "#2196F3",
        "total_amount": 10.0, "transaction_type": "income", "percentage": 100.0,
    }]
    assert [(r["category_name"], r["percentage"]) for r in expense] == [("Bills", 75.0), ("Food", 25.0)]


def test_yearly_and_category_trends(db, cats):
    _add(db, cats, "Food", 10, date(2024, 1, 5), "expense")
    _add(db, cats, "Food", 30, date(2024, 1, 6), "expense")
    _add(db, cats, "Salary", 100, date(2024, 2, 1), "income")

    yearly = reports.yearly_trends(db, USER_ID, "expense")
    assert yearly == [{"year": 2024, "month": 1, "total_amount": 40.0,
                       "transaction_count": 2, "average_amount": 20.0}]

    trends = reports.category_trends(db, USER_ID, 2024)
    food = next(t for t in trends if t["category_name"] == "Food")
    assert food["monthly_amounts"][0] == {"month": 1, "amount": 40.0}
    assert len(food["monthly_amounts"]) == 12


def test_calendar_month(db, cats):
    _add(db, cats, "Salary", 100, date(2024, 2, 1), "income")
    _add(db, cats, "Food", 40, date(2024, 2, 1), "expense")
    _add(db, cats, "Food", 10, date(2024, 2, 29), "expense")

    calendar = reports.calendar_month(db, USER_ID, 2024, 2)
    assert len(calendar["days"]) == 29
    assert calendar["days"][0]["total_amount"] == 60.0
    assert calendar["days"][0]["has_transactions"] is True
    assert calendar["days"][1]["has_transactions"] is False
    assert calendar["net_balance"] == 50.0
    assert [t["type"] for t in calendar["transactions"]] == ["income", "expense", "expense"]
    assert calendar["transactions"][0]["category_name"] == "Salary"
