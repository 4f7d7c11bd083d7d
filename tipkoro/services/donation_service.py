"""
Donation intake: validate, record, and either settle now (simulated mode) or
hand the supporter to the gateway and wait for the webhook.
"""
import logging
from decimal import Decimal
from typing import Dict
from flask import current_app

from tipkoro import db
from tipkoro.models import User, Donation
from tipkoro.services import ledger, txn_ids
from tipkoro.services.errors import ValidationError, NotFoundError, PreconditionError, GatewayError
from tipkoro.services.rupantorpay_service import RupantorPayService
from tipkoro.services.subscription_status import is_accepting_donations
from tipkoro.utils.validators import parse_amount, parse_int, parse_bool, clean_text

logger = logging.getLogger(__name__)


class DonationService:
    """One-off supporter payments to a creator"""

    @staticmethod
    def minimum_amount() -> Decimal:
        return Decimal(str(current_app.config.get('MIN_DONATION_AMOUNT', 10)))

    @staticmethod
    def validate(payload: dict) -> Dict:
        """Normalize the request body; raises ValidationError"""
        minimum = DonationService.minimum_amount()
        invalid = f'Invalid donation data. Minimum amount is {minimum:.0f} BDT.'

        if not payload.get('creator_id'):
            raise ValidationError(invalid)

        creator_id = parse_int(payload.get('creator_id'), invalid)
        amount = parse_amount(payload.get('amount'), invalid)
        if amount < minimum:
            raise ValidationError(invalid)

        is_anonymous = parse_bool(payload.get('is_anonymous', False))

        return {
            'creator_id': creator_id,
            'amount': amount,
            'is_anonymous': is_anonymous,
            'donor_name': None if is_anonymous else clean_text(payload.get('donor_name'), 100),
            'donor_email': None if is_anonymous else clean_text(payload.get('donor_email'), 120),
            'message': clean_text(payload.get('message'), 1000),
        }

    @staticmethod
    def get_accepting_creator(creator_id: int) -> User:
        creator = User.query.filter_by(id=creator_id, role='creator').first()
        if not creator:
            raise NotFoundError('Creator not found')

        if not is_accepting_donations(creator.subscription):
            raise PreconditionError("Creator's subscription is not active")

        return creator

    @staticmethod
    def process_donation(payload: dict, origin: str) -> Dict:
        """
        Record a donation.

        Args:
            payload: {creator_id, amount, donor_name?, donor_email?, message?, is_anonymous}
            origin: frontend base URL for the success/cancel redirects

        Returns:
            dict: {success, txn_id, donation_id, payment_url?, message}
        """
        data = DonationService.validate(payload)
        creator = DonationService.get_accepting_creator(data['creator_id'])

        if current_app.config['PAYMENT_MODE'] == 'simulated':
            return DonationService._settle_simulated(creator, data)
        return DonationService._start_checkout(creator, data, origin)

    @staticmethod
    def _settle_simulated(creator: User, data: Dict) -> Dict:
        txn_id = txn_ids.generate_txn_id(txn_ids.DONATION, simulated=True)

        logger.info(f"Processing simulated donation: creator={creator.id}, amount={data['amount']}, "
                    f"donor={'[ANONYMOUS]' if data['is_anonymous'] else data['donor_name']}, txn={txn_id}")

        donation = Donation(
            txn_id=txn_id,
            payment_id=f'simulated_{txn_id}',
            payment_status='pending',
            **data
        )

        try:
            db.session.add(donation)
            db.session.flush()
            # Same transition the webhook applies: completed + credit, one commit
            ledger.complete_donation(donation)
            db.session.commit()
        except Exception:
            db.session.rollback()
            logger.exception(f"Simulated donation {txn_id} rolled back")
            raise

        logger.info(f"Donation processed successfully: id={donation.id}, txn={txn_id}")

        return {
            'success': True,
            'txn_id': txn_id,
            'donation_id': donation.id,
            'message': 'Donation processed successfully'
        }

    @staticmethod
    def _start_checkout(creator: User, data: Dict, origin: str) -> Dict:
        txn_id = txn_ids.generate_txn_id(txn_ids.DONATION, creator.id)

        checkout = RupantorPayService.create_checkout(
            amount=data['amount'],
            txn_id=txn_id,
            fullname=data['donor_name'] or 'Anonymous Supporter',
            email=data['donor_email'],
            success_url=f"{origin}/thank-you?txn={txn_id}",
            cancel_url=f"{origin}/d/{creator.username}?payment=cancelled",
            webhook_url=RupantorPayService.webhook_url()
        )

        # Nothing is stored unless the gateway accepted the checkout
        if not checkout['success']:
            logger.error(f"Checkout rejected for donation {txn_id}: {checkout['error']}")
            raise GatewayError(checkout['error'])

        donation = Donation(
            txn_id=txn_id,
            payment_id=checkout['payment_id'],
            payment_status='pending',
            **data
        )

        try:
            db.session.add(donation)
            db.session.commit()
        except Exception:
            db.session.rollback()
            logger.exception(f"Could not record donation {txn_id} after checkout was opened")
            raise

        logger.info(f"Donation {txn_id} pending gateway confirmation (id={donation.id})")

        return {
            'success': True,
            'txn_id': txn_id,
            'donation_id': donation.id,
            'payment_url': checkout['payment_url'],
            'message': 'Donation initiated, redirecting to payment gateway'
        }
