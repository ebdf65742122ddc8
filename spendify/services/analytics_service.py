from datetime import datetime
from calendar import monthrange, month_abbr

from sqlalchemy import func, case

from spendify.extensions import db
from spendify.models.transaction import Transaction, ORIGIN_CARD
from spendify.models.user import User
from spendify.utils.dates import utcnow


def month_bounds(year, month):
    last_day = monthrange(year, month)[1]
    return datetime(year, month, 1), datetime(year, month, last_day, 23, 59, 59)


def shift_month(year, month, offset):
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def _totals(user_id, start=None, end=None):
    """(income, expense, count) for a user, optionally within a date window.

    Moves between the user's own cards are neither income nor expense.
    """
    q = db.session.query(
        func.coalesce(func.sum(case((Transaction.type == "income", Transaction.amount), else_=0)), 0),
        func.coalesce(func.sum(case((Transaction.type == "expense", Transaction.amount), else_=0)), 0),
        func.count(Transaction.id),
    ).filter(Transaction.user_id == user_id, Transaction.origin != ORIGIN_CARD)
    if start is not None:
        q = q.filter(Transaction.date >= start, Transaction.date <= end)
    income, expense, count = q.one()
    return float(income), float(expense), count


def _category_rows(user_id, start, end, kind=None, limit=None):
    total = func.sum(Transaction.amount)
    q = (
        db.session.query(
            Transaction.category,
            total.label("total"),
            func.count(Transaction.id).label("txn_count"),
            func.min(Transaction.type).label("type"),
        )
        .filter(
            Transaction.user_id == user_id,
            Transaction.origin != ORIGIN_CARD,
            Transaction.date >= start,
            Transaction.date <= end,
        )
        .group_by(Transaction.category)
        .order_by(total.desc())
    )
    if kind:
        q = q.filter(Transaction.type == kind)
    if limit:
        q = q.limit(limit)
    return q.all()


def monthly_summary(user_id, year, month):
    start, end = month_bounds(year, month)
    income, expense, count = _totals(user_id, start, end)

    prev_year, prev_month = shift_month(year, month, -1)
    _, prev_expense, _ = _totals(user_id, *month_bounds(prev_year, prev_month))

    growth = 0.0 if prev_expense == 0 else round((expense - prev_expense) / prev_expense * 100, 2)
    return {
        "period": {"month": month, "year": year},
        "income": income,
        "expense": expense,
        "balance": income - expense,
        "transactionCount": count,
        "growthPercentage": growth,
        "comparison": {"previousMonth": {"expense": prev_expense}},
    }


def category_breakdown(user_id, year, month=None, kind=None):
    if month:
        start, end = month_bounds(year, month)
    else:
        start, end = datetime(year, 1, 1), datetime(year, 12, 31, 23, 59, 59)

    rows = _category_rows(user_id, start, end, kind=kind)
    total = sum(float(r.total) for r in rows)
    return {
        "categories": [
            {
                "category": r.category,
                "amount": float(r.total),
                "count": r.txn_count,
                "type": r.type,
                "percentage": 0 if total == 0 else round(float(r.total) / total * 100, 2),
            }
            for r in rows
        ],
        "total": total,
        "period": {"year": year, "month": month},
    }


def trends(user_id, months=6, now=None):
    """Income and expense for the last ``months`` calendar months, oldest first."""
    now = now or utcnow()
    result = []
    for offset in range(months - 1, -1, -1):
        year, month = shift_month(now.year, now.month, -offset)
        income, expense, _ = _totals(user_id, *month_bounds(year, month))
        result.append({
            "month": month,
            "year": year,
            "monthName": month_abbr[month],
            "income": income,
            "expense": expense,
            "balance": income - expense,
        })
    return result


def dashboard_summary(user_id, now=None):
    now = now or utcnow()
    start, end = month_bounds(now.year, now.month)
    user = User.query.get(user_id)

    monthly_income, monthly_expense, _ = _totals(user_id, start, end)
    total_income, total_expense, _ = _totals(user_id)
    recent = (
        Transaction.query.filter_by(user_id=user_id)
        .order_by(Transaction.date.desc())
        .limit(5)
        .all()
    )
    top = _category_rows(user_id, start, end, kind="expense", limit=5)

    return {
        "balance": float(user.balance or 0),
        "monthly": {
            "income": monthly_income,
            "expense": monthly_expense,
            "balance": monthly_income - monthly_expense,
        },
        "allTime": {"income": total_income, "expense": total_expense},
        "recentTransactions": recent,
        "topCategories": [
            {"category": r.category, "amount": float(r.total), "count": r.txn_count}
            for r in top
        ],
    }
