"""
Trusted writes against the ledger tables.

Every balance or payment-state mutation in TipKoro goes through this module.
Mutations are single UPDATE statements guarded by a WHERE clause (balance
floor, or the expected source state), and the caller learns from the affected
row count whether the transition happened. Nothing here commits: writes join
the caller's transaction so a failure rolls back every write of the request.
"""
import logging
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal

from tipkoro import db
from tipkoro.models import User, Subscription, Donation, Withdrawal

logger = logging.getLogger(__name__)


@contextmanager
def elevated(operation, **ids):
    """Service-role write scope; each use is logged with the touched ids"""
    details = ', '.join(f"{key}={value}" for key, value in ids.items())
    logger.info(f"[service-role] {operation}: {details}")
    try:
        yield db.session
    except Exception:
        logger.error(f"[service-role] {operation} failed: {details}")
        raise


def _money(amount):
    return amount if isinstance(amount, Decimal) else Decimal(str(amount))


# ---------------------------------------------------------------------------
# Balance
# ---------------------------------------------------------------------------

def credit_balance(user_id, amount):
    """Add to current_amount; returns False if the user does not exist"""
    amount = _money(amount)
    with elevated('credit_balance', user_id=user_id, amount=amount):
        rows = User.query.filter(User.id == user_id).update({
            User.current_amount: User.current_amount + amount,
            User.updated_at: datetime.utcnow(),
        })
    return rows == 1


def debit_balance(user_id, amount):
    """Subtract from current_amount only if the balance covers it"""
    amount = _money(amount)
    with elevated('debit_balance', user_id=user_id, amount=amount):
        rows = User.query.filter(
            User.id == user_id,
            User.current_amount >= amount
        ).update({
            User.current_amount: User.current_amount - amount,
            User.updated_at: datetime.utcnow(),
        })
    return rows == 1


def available_balance(user_id):
    """Fresh read of current_amount, bypassing the session identity map"""
    value = db.session.query(User.current_amount).filter(User.id == user_id).scalar()
    return _money(value or 0)


# ---------------------------------------------------------------------------
# Donations
# ---------------------------------------------------------------------------

def complete_donation(donation):
    """pending -> completed, crediting the creator in the same transaction"""
    with elevated('complete_donation', donation_id=donation.id, txn_id=donation.txn_id):
        rows = Donation.query.filter(
            Donation.txn_id == donation.txn_id,
            Donation.payment_status == 'pending'
        ).update({
            Donation.payment_status: 'completed',
            Donation.updated_at: datetime.utcnow(),
        })

    if rows == 0:
        logger.info(f"Donation {donation.txn_id} already settled, nothing to credit")
        return False

    if not credit_balance(donation.creator_id, donation.amount):
        raise RuntimeError(f"Creator {donation.creator_id} vanished while crediting {donation.txn_id}")
    return True


def fail_donation(donation):
    """pending -> failed; nothing was credited so nothing is reversed"""
    with elevated('fail_donation', donation_id=donation.id, txn_id=donation.txn_id):
        rows = Donation.query.filter(
            Donation.txn_id == donation.txn_id,
            Donation.payment_status == 'pending'
        ).update({
            Donation.payment_status: 'failed',
            Donation.updated_at: datetime.utcnow(),
        })
    return rows == 1


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------

def sync_subscription_mirror(user_id, is_active, paid_until):
    """Copy status and paid-through date onto the User row"""
    with elevated('sync_subscription_mirror', user_id=user_id):
        User.query.filter(User.id == user_id).update({
            User.subscription_status: 'active' if is_active else 'inactive',
            User.subscription_expires_at: paid_until,
            User.updated_at: datetime.utcnow(),
        })


def activate_subscription(subscription, txn_id):
    """pending -> active for the payment identified by txn_id"""
    with elevated('activate_subscription', subscription_id=subscription.id, txn_id=txn_id):
        rows = Subscription.query.filter(
            Subscription.id == subscription.id,
            Subscription.last_payment_txn_id == txn_id,
            Subscription.status == 'pending'
        ).update({
            Subscription.is_active: True,
            Subscription.status: 'active',
            Subscription.previous_paid_until: None,
            Subscription.updated_at: datetime.utcnow(),
        })

    if rows == 0:
        return False

    sync_subscription_mirror(subscription.user_id, True, subscription.paid_until)
    return True


def fail_subscription(subscription, txn_id):
    """pending -> failed; the extension granted at intake is taken back"""
    # None when no earlier payment was ever confirmed
    restored_until = subscription.previous_paid_until

    with elevated('fail_subscription', subscription_id=subscription.id, txn_id=txn_id):
        rows = Subscription.query.filter(
            Subscription.id == subscription.id,
            Subscription.last_payment_txn_id == txn_id,
            Subscription.status == 'pending'
        ).update({
            Subscription.is_active: False,
            Subscription.status: 'failed',
            Subscription.paid_until: restored_until,
            Subscription.previous_paid_until: None,
            Subscription.updated_at: datetime.utcnow(),
        })

    if rows == 0:
        return False

    sync_subscription_mirror(subscription.user_id, False, restored_until)
    return True


# ---------------------------------------------------------------------------
# Withdrawals
# ---------------------------------------------------------------------------

def settle_withdrawal(withdrawal, approve, notes=None):
    """
    pending -> approved | rejected. A rejection releases the held amount back
    to the creator's balance.
    """
    new_status = 'approved' if approve else 'rejected'
    values = {
        Withdrawal.status: new_status,
        Withdrawal.processed_at: datetime.utcnow(),
    }
    if notes:
        values[Withdrawal.notes] = notes

    with elevated(f'{new_status}_withdrawal', withdrawal_id=withdrawal.id, user_id=withdrawal.user_id):
        rows = Withdrawal.query.filter(
            Withdrawal.id == withdrawal.id,
            Withdrawal.status == 'pending'
        ).update(values)

    if rows == 0:
        return False

    if not approve and not credit_balance(withdrawal.user_id, withdrawal.amount):
        raise RuntimeError(f"User {withdrawal.user_id} vanished while releasing withdrawal {withdrawal.id}")
    return True
