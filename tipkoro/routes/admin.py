from flask import Blueprint, jsonify, request
from flask_login import login_required

from tipkoro.services.withdrawal_service import WithdrawalService
from tipkoro.utils.decorators import admin_required
from tipkoro.utils.validators import json_object

bp = Blueprint('admin', __name__, url_prefix='/admin')

WITHDRAWAL_STATUSES = ('pending', 'approved', 'rejected')


@bp.route('/withdrawals')
@login_required
@admin_required
def withdrawals():
    """All withdrawal requests, optionally filtered by ?status="""
    status = request.args.get('status')
    if status not in WITHDRAWAL_STATUSES:
        status = None

    items = WithdrawalService.list_by_status(status)
    return jsonify({
        'withdrawals': [w.to_dict() for w in items],
        'total_amount': float(sum(w.amount for w in items)),
    })


@bp.route('/withdrawal/<int:id>/approve', methods=['POST'])
@login_required
@admin_required
def approve_withdrawal(id):
    """Funds were paid out by hand; the hold becomes final"""
    data = json_object(request.get_json(silent=True))
    withdrawal = WithdrawalService.settle(id, approve=True, notes=data.get('notes'))
    return jsonify({'success': True, 'withdrawal': withdrawal.to_dict()})


@bp.route('/withdrawal/<int:id>/reject', methods=['POST'])
@login_required
@admin_required
def reject_withdrawal(id):
    """Reject and release the held amount back to the creator's balance"""
    data = json_object(request.get_json(silent=True))
    withdrawal = WithdrawalService.settle(id, approve=False, notes=data.get('notes'))
    return jsonify({'success': True, 'withdrawal': withdrawal.to_dict()})
