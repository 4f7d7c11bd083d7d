# tests/test_rupantorpay_service.py
"""
RupantorPay HTTP client
"""
import pytest
import requests
from decimal import Decimal
from unittest.mock import patch, MagicMock

from tipkoro.services.rupantorpay_service import RupantorPayService


def gateway_response(json_body, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_body
    return response


CHECKOUT_ARGS = dict(
    amount=Decimal('50.00'),
    txn_id='DON_1_1700000000000_ABCDEF',
    fullname='Karim',
    email='karim@test.com',
    success_url='https://tipkoro.test/thank-you?txn=DON_1_1700000000000_ABCDEF',
    cancel_url='https://tipkoro.test/d/maker?payment=cancelled',
    webhook_url='https://api.tipkoro.test/webhooks/rupantorpay',
)


class TestCreateCheckout:

    @patch('tipkoro.services.rupantorpay_service.requests.post')
    def test_success(self, mock_post, app_context):
        mock_post.return_value = gateway_response({
            'status': True,
            'payment_url': 'https://payment.rupantorpay.com/pay/xyz',
            'payment_id': 'rp_123',
        })

        result = RupantorPayService.create_checkout(**CHECKOUT_ARGS)

        assert result == {
            'success': True,
            'payment_url': 'https://payment.rupantorpay.com/pay/xyz',
            'payment_id': 'rp_123',
        }
        args, kwargs = mock_post.call_args
        assert args[0] == 'https://payment.rupantorpay.com/api/payment/checkout'
        assert kwargs['headers']['X-API-KEY'] == 'test-rupantorpay-key'
        assert kwargs['json']['amount'] == '50.00'
        assert kwargs['json']['metadata'] == {'txn_id': 'DON_1_1700000000000_ABCDEF'}
        assert kwargs['json']['webhook_url'] == 'https://api.tipkoro.test/webhooks/rupantorpay'
        assert kwargs['timeout'] == 15

    @patch('tipkoro.services.rupantorpay_service.requests.post')
    def test_payment_id_fallback(self, mock_post, app_context):
        mock_post.return_value = gateway_response({'status': True, 'payment_url': 'https://pay/x'})
        result = RupantorPayService.create_checkout(**CHECKOUT_ARGS)
        assert result['payment_id'] == 'rupantorpay_DON_1_1700000000000_ABCDEF'

    @patch('tipkoro.services.rupantorpay_service.requests.post')
    def test_gateway_refusal(self, mock_post, app_context):
        mock_post.return_value = gateway_response({'status': False, 'message': 'Invalid amount'})
        result = RupantorPayService.create_checkout(**CHECKOUT_ARGS)
        assert result['success'] is False
        assert 'Invalid amount' in result['error']

    @patch('tipkoro.services.rupantorpay_service.requests.post')
    def test_transport_error(self, mock_post, app_context):
        mock_post.side_effect = requests.ConnectionError('connection refused')
        result = RupantorPayService.create_checkout(**CHECKOUT_ARGS)
        assert result['success'] is False
        assert 'connection refused' in result['error']

    @patch('tipkoro.services.rupantorpay_service.requests.post')
    def test_server_error(self, mock_post, app_context):
        mock_post.return_value = gateway_response({}, status_code=502)
        result = RupantorPayService.create_checkout(**CHECKOUT_ARGS)
        assert result['success'] is False

    @patch('tipkoro.services.rupantorpay_service.requests.post')
    def test_missing_api_key(self, mock_post, app_context):
        app_context.config['RUPANTORPAY_API_KEY'] = None
        result = RupantorPayService.create_checkout(**CHECKOUT_ARGS)
        assert result['success'] is False
        assert 'not configured' in result['error']
        mock_post.assert_not_called()


class TestVerifyPayment:

    @patch('tipkoro.services.rupantorpay_service.requests.post')
    def test_completed(self, mock_post, app_context):
        mock_post.return_value = gateway_response({
            'status': True, 'payment_status': 'COMPLETED', 'message': 'Paid'
        })
        result = RupantorPayService.verify_payment('DON_1_1700000000000_ABCDEF')

        assert result == {'success': True, 'status': True, 'payment_status': 'completed', 'message': 'Paid'}
        args, kwargs = mock_post.call_args
        assert args[0].endswith('/api/payment/verify-payment')
        assert kwargs['json'] == {'transaction_id': 'DON_1_1700000000000_ABCDEF'}

    @patch('tipkoro.services.rupantorpay_service.requests.post')
    def test_missing_fields(self, mock_post, app_context):
        mock_post.return_value = gateway_response({'status': False})
        result = RupantorPayService.verify_payment('DON_1')
        assert result['success'] is True
        assert result['status'] is False
        assert result['payment_status'] == 'unknown'

    @pytest.mark.parametrize('error', [requests.Timeout('timed out'), ValueError('bad json')])
    def test_unreachable(self, app_context, error):
        with patch('tipkoro.services.rupantorpay_service.requests.post', side_effect=error):
            result = RupantorPayService.verify_payment('DON_1')
        assert result['success'] is False


class TestWebhookUrl:

    def test_configured_url_wins(self, app_context):
        app_context.config['WEBHOOK_URL'] = 'https://hooks.tipkoro.test/rp'
        assert RupantorPayService.webhook_url() == 'https://hooks.tipkoro.test/rp'

    def test_derived_from_route(self, app_context):
        assert RupantorPayService.webhook_url() == 'http://localhost/webhooks/rupantorpay'
