import logging
from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user

from tipkoro import db
from tipkoro.services.donation_service import DonationService
from tipkoro.services.subscription_service import SubscriptionService
from tipkoro.services.withdrawal_service import WithdrawalService
from tipkoro.services.reconciliation_service import ReconciliationService
from tipkoro.services.errors import ValidationError
from tipkoro.utils.validators import clean_text, parse_amount, json_object

bp = Blueprint('api', __name__, url_prefix='/api')
logger = logging.getLogger(__name__)

PROFILE_TEXT_LIMITS = {
    'bio': 2000,
    'profile_image_url': 500,
    'cover_image_url': 500,
}


def request_origin():
    """Frontend base URL for gateway redirects"""
    return (request.headers.get('Origin') or current_app.config['FRONTEND_URL']).rstrip('/')


@bp.route('/donations', methods=['POST'])
def create_donation():
    """Supporter donation; no account needed"""
    data = json_object(request.get_json(silent=True))
    result = DonationService.process_donation(data, request_origin())
    return jsonify(result)


@bp.route('/subscriptions', methods=['POST'])
@login_required
def create_subscription():
    data = json_object(request.get_json(silent=True))
    result = SubscriptionService.create_subscription_payment(current_user, data, request_origin())
    return jsonify(result)


@bp.route('/withdrawals', methods=['POST'])
@login_required
def create_withdrawal():
    data = json_object(request.get_json(silent=True))
    result = WithdrawalService.request_withdrawal(current_user, data)
    return jsonify(result)


@bp.route('/withdrawals', methods=['GET'])
@login_required
def list_withdrawals():
    return jsonify({
        'withdrawals': WithdrawalService.list_for_user(current_user)
    })


@bp.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    """Presentation fields only; balance and subscription columns are never taken from the body"""
    data = json_object(request.get_json(silent=True))
    changes = {}

    if 'display_name' in data:
        changes['display_name'] = clean_text(data.get('display_name'), 100)
        if not changes['display_name']:
            raise ValidationError('Display name is required')

    for field, limit in PROFILE_TEXT_LIMITS.items():
        if field in data:
            changes[field] = clean_text(data.get(field), limit)

    if 'goal_amount' in data:
        goal = data.get('goal_amount')
        if goal in (None, ''):
            changes['goal_amount'] = None
        else:
            goal = parse_amount(goal, 'Invalid goal amount')
            if goal <= 0:
                raise ValidationError('Invalid goal amount')
            changes['goal_amount'] = goal

    for field, value in changes.items():
        setattr(current_user, field, value)
    db.session.commit()
    logger.info(f"Profile updated for user {current_user.id}")

    return jsonify({
        'success': True,
        'display_name': current_user.display_name,
        'bio': current_user.bio,
        'profile_image_url': current_user.profile_image_url,
        'cover_image_url': current_user.cover_image_url,
        'goal_amount': float(current_user.goal_amount) if current_user.goal_amount is not None else None,
    })


@bp.route('/payments/verify', methods=['POST'])
def verify_payment():
    """Settle a payment from the thank-you page when the webhook is late or lost"""
    data = json_object(request.get_json(silent=True))
    txn_id = data.get('transaction_id')
    if not txn_id or not isinstance(txn_id, str):
        raise ValidationError('transaction_id is required')

    result = ReconciliationService.reconcile(txn_id.strip())
    return jsonify(result)
