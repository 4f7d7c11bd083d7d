"""
Creator subscription intake: price, extension of the paid-through date and
the upsert of the single Subscription row per creator.
"""
import logging
from decimal import Decimal
from typing import Dict
from flask import current_app
from sqlalchemy.exc import IntegrityError

from tipkoro import db
from tipkoro.models import User, Subscription
from tipkoro.services import ledger, txn_ids
from tipkoro.services.errors import ValidationError, ConflictError, GatewayError
from tipkoro.services.rupantorpay_service import RupantorPayService
from tipkoro.services.subscription_status import compute_paid_until, server_today
from tipkoro.utils.validators import parse_int

logger = logging.getLogger(__name__)


class SubscriptionService:
    """Monthly platform fee paid by creators to stay payable-to"""

    @staticmethod
    def monthly_price() -> Decimal:
        return Decimal(str(current_app.config.get('SUBSCRIPTION_MONTHLY_PRICE', 100)))

    @staticmethod
    def price_for(duration_months: int) -> Decimal:
        return SubscriptionService.monthly_price() * duration_months

    @staticmethod
    def parse_duration(payload: dict) -> int:
        value = payload.get('duration_months')
        if value is None:
            return 1
        months = parse_int(value, 'Invalid subscription duration')
        if months < 1:
            raise ValidationError('Invalid subscription duration')
        return months

    @staticmethod
    def confirmed_paid_until(subscription):
        """
        Paid-through date backed by a confirmed payment. While a payment is
        in flight, paid_until already holds its unconfirmed extension. A failed
        first purchase leaves paid_until empty.
        """
        if subscription is None:
            return None
        if subscription.status == 'pending':
            return subscription.previous_paid_until
        return subscription.paid_until

    @staticmethod
    def create_subscription_payment(user: User, payload: dict, origin: str) -> Dict:
        """
        Start (or, in simulated mode, complete) a subscription payment.

        Returns:
            dict: {success, txn_id, subscription_id, amount, paid_until, payment_url?, message}
        """
        if not user.is_creator:
            raise ValidationError('Only creators can purchase subscriptions')

        duration_months = SubscriptionService.parse_duration(payload)
        amount = SubscriptionService.price_for(duration_months)
        simulated = current_app.config['PAYMENT_MODE'] == 'simulated'
        txn_id = txn_ids.generate_txn_id(txn_ids.SUBSCRIPTION, user.id, simulated=simulated)

        logger.info(f"Processing creator subscription payment: user={user.id}, amount={amount}, "
                    f"months={duration_months}, txn={txn_id}")

        payment_url = None
        if simulated:
            payment_id = f'simulated_{txn_id}'
        else:
            checkout = RupantorPayService.create_checkout(
                amount=amount,
                txn_id=txn_id,
                fullname=user.display_name or 'TipKoro Creator',
                email=user.email,
                success_url=f"{origin}/dashboard?payment=success&txn={txn_id}",
                cancel_url=f"{origin}/dashboard?payment=cancelled",
                webhook_url=RupantorPayService.webhook_url()
            )
            if not checkout['success']:
                logger.error(f"Checkout rejected for subscription {txn_id}: {checkout['error']}")
                raise GatewayError(checkout['error'])
            payment_id = checkout['payment_id']
            payment_url = checkout['payment_url']

        subscription = Subscription.query.filter_by(user_id=user.id).first()
        confirmed_until = SubscriptionService.confirmed_paid_until(subscription)
        paid_until = compute_paid_until(confirmed_until, duration_months, server_today())

        try:
            if subscription is None:
                subscription = Subscription(user_id=user.id)
                db.session.add(subscription)

            subscription.amount = amount
            subscription.paid_until = paid_until
            subscription.previous_paid_until = confirmed_until
            subscription.last_payment_txn_id = txn_id
            subscription.payment_id = payment_id
            subscription.status = 'pending'
            subscription.is_active = False  # activated by the webhook
            db.session.flush()

            if simulated:
                ledger.activate_subscription(subscription, txn_id)

            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.warning(f"Concurrent subscription purchase for user {user.id}, txn {txn_id} dropped")
            raise ConflictError('Subscription update already in progress, please retry')
        except Exception:
            db.session.rollback()
            logger.exception(f"Error creating/updating subscription for txn {txn_id}")
            raise

        logger.info(f"Subscription processed: id={subscription.id}, txn={txn_id}, paid_until={paid_until}")

        result = {
            'success': True,
            'txn_id': txn_id,
            'subscription_id': subscription.id,
            'amount': float(amount),
            'paid_until': paid_until.isoformat(),
            'message': 'Subscription activated' if simulated
                       else 'Subscription payment initiated, redirecting to payment gateway'
        }
        if payment_url:
            result['payment_url'] = payment_url
        return result
