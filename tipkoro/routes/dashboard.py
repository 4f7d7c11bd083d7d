from flask import Blueprint, jsonify
from flask_login import login_required, current_user
from sqlalchemy import func

from tipkoro import db
from tipkoro.models import Donation, Withdrawal
from tipkoro.services.errors import ValidationError
from tipkoro.services.subscription_status import describe

bp = Blueprint('dashboard', __name__, url_prefix='/dashboard')

RECENT_LIMIT = 10


def _sum(column, *criteria):
    return db.session.query(func.coalesce(func.sum(column), 0)).filter(*criteria).scalar() or 0


@bp.route('/summary')
@login_required
def summary():
    """Creator dashboard: balance, totals and subscription state"""
    if not current_user.is_creator:
        raise ValidationError('Only creators have a dashboard')

    user_id = current_user.id

    total_received = _sum(Donation.amount,
                          Donation.creator_id == user_id,
                          Donation.payment_status == 'completed')
    donations_count = Donation.query.filter_by(creator_id=user_id, payment_status='completed').count()
    pending_withdrawals = _sum(Withdrawal.amount,
                               Withdrawal.user_id == user_id,
                               Withdrawal.status == 'pending')
    total_withdrawn = _sum(Withdrawal.amount,
                           Withdrawal.user_id == user_id,
                           Withdrawal.status == 'approved')

    recent_donations = current_user.donations.filter_by(payment_status='completed').order_by(
        Donation.created_at.desc()
    ).limit(RECENT_LIMIT).all()
    recent_withdrawals = current_user.withdrawals.order_by(
        Withdrawal.created_at.desc()
    ).limit(RECENT_LIMIT).all()

    return jsonify({
        'balance': float(current_user.current_amount or 0),
        'goal_amount': float(current_user.goal_amount) if current_user.goal_amount is not None else None,
        'total_received': float(total_received),
        'donations_count': donations_count,
        'pending_withdrawals': float(pending_withdrawals),
        'total_withdrawn': float(total_withdrawn),
        'subscription': describe(current_user.subscription),
        'recent_donations': [d.to_dict() for d in recent_donations],
        'recent_withdrawals': [w.to_dict() for w in recent_withdrawals],
    })
