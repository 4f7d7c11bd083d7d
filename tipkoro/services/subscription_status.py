"""
Read-side subscription rules: is a creator accepting donations right now,
and how far a renewal extends the paid-through date.
"""
import calendar
from datetime import date, datetime


def server_today():
    """Today's date on the server clock (UTC); never taken from the client"""
    return datetime.utcnow().date()


def is_accepting_donations(subscription, today=None):
    """Both the active flag and the paid-through date must hold"""
    if subscription is None:
        return False
    if today is None:
        today = server_today()
    return bool(subscription.is_active) and subscription.paid_until is not None \
        and subscription.paid_until >= today


def add_months(start: date, months: int) -> date:
    """Calendar month arithmetic; the day is clamped to the target month's length"""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def compute_paid_until(current_paid_until, duration_months, today=None):
    """
    New paid-through date for a renewal.

    Renewing before expiry extends from the existing date so no paid time is
    lost; renewing after expiry (or a first purchase) starts from today.
    """
    if today is None:
        today = server_today()

    if current_paid_until is None:
        extend_from = today
    else:
        extend_from = max(current_paid_until, today)

    return add_months(extend_from, duration_months)


def describe(subscription, today=None):
    """Status block used by profile and dashboard responses"""
    if today is None:
        today = server_today()

    if subscription is None:
        return {
            'accepting_donations': False,
            'is_active': False,
            'paid_until': None,
            'days_remaining': 0,
            'status': 'none',
        }

    accepting = is_accepting_donations(subscription, today)
    days_remaining = (subscription.paid_until - today).days if accepting else 0
    return {
        'accepting_donations': accepting,
        'is_active': bool(subscription.is_active),
        'paid_until': subscription.paid_until.isoformat() if subscription.paid_until else None,
        'days_remaining': days_remaining,
        'status': subscription.status,
    }
