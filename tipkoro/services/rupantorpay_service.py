"""
RupantorPay integration: hosted checkout and payment verification
"""
import logging
import requests
from typing import Dict, Optional
from flask import current_app, url_for

logger = logging.getLogger(__name__)


class RupantorPayService:
    """HTTP client for the RupantorPay payment API"""

    CHECKOUT_PATH = '/api/payment/checkout'
    VERIFY_PATH = '/api/payment/verify-payment'

    @staticmethod
    def _headers() -> Dict:
        return {
            'accept': 'application/json',
            'X-API-KEY': current_app.config.get('RUPANTORPAY_API_KEY') or '',
            'content-type': 'application/json',
        }

    @staticmethod
    def webhook_url() -> str:
        """Callback URL handed to the gateway with every checkout"""
        return current_app.config.get('WEBHOOK_URL') or url_for('webhooks.rupantorpay', _external=True)

    @staticmethod
    def _post(path: str, payload: dict) -> Dict:
        """POST to the gateway and decode the JSON body"""
        url = current_app.config['RUPANTORPAY_BASE_URL'].rstrip('/') + path
        response = requests.post(
            url,
            json=payload,
            headers=RupantorPayService._headers(),
            timeout=current_app.config.get('RUPANTORPAY_TIMEOUT', 15)
        )
        if response.status_code >= 500:
            raise requests.HTTPError(f"RupantorPay returned HTTP {response.status_code}", response=response)
        return response.json()

    @staticmethod
    def create_checkout(
        amount,
        txn_id: str,
        fullname: str,
        email: Optional[str],
        success_url: str,
        cancel_url: str,
        webhook_url: str
    ) -> Dict:
        """Open a hosted checkout session; the supporter is redirected to payment_url"""
        if not current_app.config.get('RUPANTORPAY_API_KEY'):
            return {
                'success': False,
                'error': 'RupantorPay API key not configured. Set RUPANTORPAY_API_KEY in .env'
            }

        payload = {
            'success_url': success_url,
            'cancel_url': cancel_url,
            'webhook_url': webhook_url,
            'fullname': fullname,
            'email': email or 'supporter@tipkoro.com',
            'amount': str(amount),
            'metadata': {'txn_id': txn_id},
        }

        logger.info(f"Opening RupantorPay checkout: txn={txn_id}, amount={amount}")

        try:
            result = RupantorPayService._post(RupantorPayService.CHECKOUT_PATH, payload)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"RupantorPay checkout failed for {txn_id}: {e}")
            return {
                'success': False,
                'error': f'RupantorPay API error: {e}'
            }

        if not result.get('status') or not result.get('payment_url'):
            return {
                'success': False,
                'error': f"RupantorPay API error: {result.get('message') or 'Unknown error'}"
            }

        return {
            'success': True,
            'payment_url': result['payment_url'],
            'payment_id': result.get('payment_id') or f'rupantorpay_{txn_id}',
        }

    @staticmethod
    def verify_payment(txn_id: str) -> Dict:
        """
        Ask the gateway for the settlement status of a transaction.

        Returns:
            dict: success=False only when the gateway could not be asked;
                  otherwise status / payment_status / message as reported.
        """
        try:
            result = RupantorPayService._post(RupantorPayService.VERIFY_PATH, {'transaction_id': txn_id})
        except (requests.RequestException, ValueError) as e:
            logger.error(f"RupantorPay verification failed for {txn_id}: {e}")
            return {
                'success': False,
                'error': f'RupantorPay verification error: {e}'
            }

        logger.info(f"RupantorPay verification for {txn_id}: {result}")

        return {
            'success': True,
            'status': bool(result.get('status')),
            'payment_status': (result.get('payment_status') or 'unknown').lower(),
            'message': result.get('message') or 'Payment verification completed',
        }
