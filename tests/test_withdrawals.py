# tests/test_withdrawals.py
"""
Withdrawal intake: balance hold, overdraw protection and history
"""
import json
from decimal import Decimal
from unittest.mock import patch

from tipkoro.models import Withdrawal
from tipkoro.services import ledger
from tests.conftest import auth_header, balance_of


def bkash_request(amount, **overrides):
    body = {
        'amount': amount,
        'method': 'bkash',
        'bank_account_name': 'Rich Creator',
        'bank_account_number': '01711111111',
    }
    body.update(overrides)
    return body


def withdraw(client, user, body):
    return client.post('/api/withdrawals', data=json.dumps(body),
                       content_type='application/json', headers=auth_header(user))


class TestWithdrawalValidation:

    def test_requires_token(self, client, rich_creator):
        resp = client.post('/api/withdrawals', data=json.dumps(bkash_request(10)),
                           content_type='application/json')
        assert resp.status_code == 401

    def test_donator_cannot_withdraw(self, client, donator):
        resp = withdraw(client, donator, bkash_request(10))
        assert resp.status_code == 400
        assert resp.get_json()['error'] == 'Only creators can request withdrawals'

    def test_zero_or_negative_amount(self, client, rich_creator):
        for amount in (0, -5, 'abc', None):
            resp = withdraw(client, rich_creator, bkash_request(amount))
            assert resp.status_code == 400
            assert resp.get_json()['error'] == 'Invalid withdrawal amount'
        assert balance_of(rich_creator.id) == Decimal('100.00')

    def test_unknown_method(self, client, rich_creator):
        resp = withdraw(client, rich_creator, bkash_request(10, method='paypal'))
        assert resp.status_code == 400

    def test_account_fields_required(self, client, rich_creator):
        resp = withdraw(client, rich_creator, bkash_request(10, bank_account_number=''))
        assert resp.status_code == 400

    def test_bank_transfer_needs_bank_name(self, client, rich_creator):
        resp = withdraw(client, rich_creator, bkash_request(10, method='bank'))
        assert resp.status_code == 400
        resp = withdraw(client, rich_creator, bkash_request(10, method='bank', bank_name='BRAC Bank'))
        assert resp.status_code == 200


class TestWithdrawalHold:

    def test_over_balance_rejected_and_balance_unchanged(self, client, rich_creator):
        resp = withdraw(client, rich_creator, bkash_request('100.01'))

        assert resp.status_code == 400
        body = resp.get_json()
        assert body['error'] == 'Insufficient balance'
        assert body['available_balance'] == 100.0
        assert balance_of(rich_creator.id) == Decimal('100.00')
        assert Withdrawal.query.count() == 0

    def test_full_balance_leaves_exactly_zero(self, client, rich_creator):
        resp = withdraw(client, rich_creator, bkash_request(100))

        assert resp.status_code == 200
        data = resp.get_json()
        assert data['success'] is True
        assert balance_of(rich_creator.id) == Decimal('0')

        withdrawal = Withdrawal.query.get(data['withdrawal_id'])
        assert withdrawal.status == 'pending'
        assert withdrawal.amount == Decimal('100')
        assert withdrawal.bank_name == 'bKash'

    def test_partial_withdrawal(self, client, rich_creator):
        withdraw(client, rich_creator, bkash_request('35.25'))
        assert balance_of(rich_creator.id) == Decimal('64.75')

    def test_two_sixty_percent_requests_one_wins(self, client, rich_creator):
        first = withdraw(client, rich_creator, bkash_request(60))
        second = withdraw(client, rich_creator, bkash_request(60))

        assert first.status_code == 200
        assert second.status_code == 400
        assert Withdrawal.query.count() == 1
        assert balance_of(rich_creator.id) == Decimal('40.00')

    def test_stale_balance_read_cannot_overdraw(self, client, rich_creator):
        """Second request passes the read check with a stale balance; the guarded debit stops it"""
        first = withdraw(client, rich_creator, bkash_request(60))
        assert first.status_code == 200

        with patch.object(ledger, 'available_balance', side_effect=[Decimal('100.00'), Decimal('40.00')]):
            second = withdraw(client, rich_creator, bkash_request(60))

        assert second.status_code == 400
        body = second.get_json()
        assert body['error'] == 'Insufficient balance'
        assert body['available_balance'] == 40.0
        # The compensating rollback removed the second request
        assert Withdrawal.query.count() == 1
        assert balance_of(rich_creator.id) == Decimal('40.00')

    def test_insert_failure_keeps_balance(self, client, rich_creator):
        with patch.object(ledger, 'debit_balance', side_effect=RuntimeError('storage unavailable')):
            resp = withdraw(client, rich_creator, bkash_request(50))

        assert resp.status_code == 500
        assert Withdrawal.query.count() == 0
        assert balance_of(rich_creator.id) == Decimal('100.00')


class TestWithdrawalHistory:

    def test_lists_own_withdrawals_newest_first(self, client, rich_creator, creator):
        withdraw(client, rich_creator, bkash_request(10))
        withdraw(client, rich_creator, bkash_request(20, method='nagad'))

        resp = client.get('/api/withdrawals', headers=auth_header(rich_creator))
        items = resp.get_json()['withdrawals']
        assert [w['amount'] for w in items] == [20.0, 10.0]
        assert items[0]['bank_name'] == 'Nagad'

        other = client.get('/api/withdrawals', headers=auth_header(creator))
        assert other.get_json()['withdrawals'] == []
