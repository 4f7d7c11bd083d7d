# tipkoro/routes/webhooks.py
from flask import Blueprint, request, jsonify
import logging

from tipkoro.services.reconciliation_service import ReconciliationService
from tipkoro.services.errors import ValidationError
from tipkoro.utils.validators import json_object

bp = Blueprint('webhooks', __name__, url_prefix='/webhooks')
logger = logging.getLogger(__name__)


@bp.route('/rupantorpay', methods=['POST'])
def rupantorpay():
    """
    RupantorPay payment callback.

    Only the transaction id is taken from the body; status and amount are
    advisory and the outcome comes from the verification call.
    """
    payload = request.get_json(silent=True)
    if payload is None:
        # Some gateway retries arrive form-encoded
        payload = request.form.to_dict()
    payload = json_object(payload)

    logger.info(f"=== RUPANTORPAY WEBHOOK RECEIVED === {payload}")

    txn_id = payload.get('transaction_id') or payload.get('txn_id')
    if not txn_id or not isinstance(txn_id, str):
        logger.error("Webhook without transaction_id")
        raise ValidationError('Missing transaction_id')

    result = ReconciliationService.reconcile(txn_id.strip())

    logger.info(f"Webhook for {txn_id} handled: {result['outcome']}")
    return jsonify({
        'success': True,
        'transaction_id': result['transaction_id'],
        'outcome': result['outcome'],
    }), 200
