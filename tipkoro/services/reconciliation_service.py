"""
Settlement of gateway payments.

Shared by the webhook, the verify endpoint and the pending sweep. The callback
body is never trusted: every settlement starts with a verification call to the
gateway, and the transaction id prefix alone decides which table is touched.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict

from tipkoro import db
from tipkoro.models import Donation, Subscription
from tipkoro.services import ledger, txn_ids
from tipkoro.services.errors import ServiceError, ValidationError, ConflictError, GatewayError
from tipkoro.services.rupantorpay_service import RupantorPayService

logger = logging.getLogger(__name__)

COMPLETE = 'complete'
WAIT = 'wait'
FAIL = 'fail'

IN_FLIGHT_STATUSES = ('pending', 'processing')


def _find_donation(txn_id):
    return Donation.query.filter_by(txn_id=txn_id).first()


def _find_subscription(txn_id):
    return Subscription.query.filter_by(last_payment_txn_id=txn_id).first()


# prefix -> (label, lookup, complete transition, fail transition)
HANDLERS = {
    txn_ids.DONATION: (
        'donation',
        _find_donation,
        lambda donation, txn_id: ledger.complete_donation(donation),
        lambda donation, txn_id: ledger.fail_donation(donation),
    ),
    txn_ids.SUBSCRIPTION: (
        'subscription',
        _find_subscription,
        ledger.activate_subscription,
        ledger.fail_subscription,
    ),
}


class ReconciliationService:

    @staticmethod
    def verdict(verification: Dict) -> str:
        """Map a verification result onto complete / wait / fail"""
        payment_status = verification.get('payment_status')
        if verification.get('status') and payment_status == 'completed':
            return COMPLETE
        if verification.get('status') and payment_status in IN_FLIGHT_STATUSES:
            return WAIT
        return FAIL

    @staticmethod
    def reconcile(txn_id: str) -> Dict:
        """
        Verify one transaction with the gateway and apply the matching transition.

        Returns:
            dict: {success, transaction_id, kind, payment_status, outcome, message}
                  outcome is completed, failed, pending or unchanged

        Raises:
            ValidationError: unknown prefix
            ConflictError: no local record carries this id
            GatewayError: verification could not be performed; nothing was changed
        """
        kind = txn_ids.kind_of(txn_id)
        if kind is None:
            logger.warning(f"Unknown transaction type for {txn_id!r}")
            raise ValidationError('Unknown transaction type', transaction_id=txn_id)

        label, lookup, complete, fail = HANDLERS[kind]

        record = lookup(txn_id)
        if record is None:
            logger.warning(f"No {label} recorded for {txn_id}")
            raise ConflictError('Transaction not recorded', transaction_id=txn_id)

        verification = RupantorPayService.verify_payment(txn_id)
        if not verification['success']:
            raise GatewayError(verification['error'])

        verdict = ReconciliationService.verdict(verification)
        logger.info(f"Reconciling {label} {txn_id}: gateway says {verification['payment_status']} -> {verdict}")

        if verdict == WAIT:
            outcome = 'pending'
        else:
            try:
                if verdict == COMPLETE:
                    outcome = 'completed' if complete(record, txn_id) else 'unchanged'
                else:
                    outcome = 'failed' if fail(record, txn_id) else 'unchanged'
                db.session.commit()
            except Exception:
                db.session.rollback()
                logger.exception(f"Reconciliation of {txn_id} rolled back")
                raise

        if outcome == 'unchanged':
            logger.info(f"{label.capitalize()} {txn_id} already settled, delivery ignored")

        return {
            'success': True,
            'transaction_id': txn_id,
            'kind': label,
            'payment_status': verification['payment_status'],
            'outcome': outcome,
            'message': verification['message'],
        }

    @staticmethod
    def pending_transaction_ids(older_than_minutes: int):
        cutoff = datetime.utcnow() - timedelta(minutes=older_than_minutes)

        donation_ids = [row.txn_id for row in db.session.query(Donation.txn_id).filter(
            Donation.payment_status == 'pending',
            Donation.created_at <= cutoff
        ).order_by(Donation.created_at)]

        subscription_ids = [row.last_payment_txn_id for row in db.session.query(Subscription.last_payment_txn_id).filter(
            Subscription.status == 'pending',
            Subscription.last_payment_txn_id.isnot(None),
            Subscription.updated_at <= cutoff
        ).order_by(Subscription.updated_at)]

        return donation_ids + subscription_ids

    @staticmethod
    def reconcile_pending(older_than_minutes: int) -> Dict:
        """Re-verify every stale pending payment; one failure does not stop the sweep"""
        summary = {'checked': 0, 'completed': 0, 'failed': 0, 'pending': 0, 'unchanged': 0, 'errors': 0}

        for txn_id in ReconciliationService.pending_transaction_ids(older_than_minutes):
            summary['checked'] += 1
            try:
                result = ReconciliationService.reconcile(txn_id)
            except ServiceError as e:
                summary['errors'] += 1
                logger.error(f"Sweep could not reconcile {txn_id}: {e.message} {e.context}")
                continue
            summary[result['outcome']] += 1

        logger.info(f"Pending sweep finished: {summary}")
        return summary
