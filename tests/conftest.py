# tests/conftest.py
"""
Shared fixtures for the TipKoro tests
"""
import os
import pytest
from decimal import Decimal
from datetime import timedelta
from flask import g

# Force environment BEFORE importing the app
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing'
os.environ['PAYMENT_MODE'] = 'gateway'
os.environ['RUPANTORPAY_API_KEY'] = 'test-rupantorpay-key'
os.environ['LOG_FILE'] = ''

from tipkoro import create_app, db as _db
from tipkoro.models import User, Subscription, Donation, Withdrawal
from tipkoro.services.subscription_status import server_today, add_months
from tipkoro.utils.security import generate_access_token


@pytest.fixture(scope='function')
def app():
    """Flask application for tests"""
    app = create_app()
    app.config.update({
        'TESTING': True,
        'SERVER_NAME': 'localhost',
        'FRONTEND_URL': 'https://tipkoro.test',
        'PAYMENT_MODE': 'gateway',
    })

    # The test client reuses the fixture's app context, so the user loaded
    # for one request would otherwise stick to the next one.
    @app.teardown_request
    def forget_request_user(exc):
        g.pop('_login_user', None)

    return app


@pytest.fixture(scope='function')
def db(app):
    """Create and drop the schema around every test"""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app, db):
    """HTTP test client"""
    with app.test_client() as client:
        yield client


@pytest.fixture
def app_context(app, db):
    """Application context"""
    yield app


@pytest.fixture
def simulated(app):
    """Instant settlement instead of the gateway round-trip"""
    app.config['PAYMENT_MODE'] = 'simulated'
    return app


def make_user(db, email, username, role, balance='0', password='TestPass123'):
    user = User(
        email=email,
        username=username,
        display_name=username.title(),
        role=role,
        current_amount=Decimal(balance),
    )
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


def give_subscription(db, user, paid_until, is_active=True, status='active'):
    sub = Subscription(
        user_id=user.id,
        amount=Decimal('100'),
        paid_until=paid_until,
        is_active=is_active,
        status=status,
        last_payment_txn_id=f'SUB_{user.id}_1700000000000_ABCDEF',
    )
    db.session.add(sub)
    db.session.commit()
    return sub


@pytest.fixture
def creator(db):
    """Creator without a subscription"""
    return make_user(db, 'creator@test.com', 'testcreator', 'creator')


@pytest.fixture
def active_creator(db):
    """Creator whose subscription runs for another month"""
    user = make_user(db, 'active@test.com', 'activecreator', 'creator')
    give_subscription(db, user, add_months(server_today(), 1))
    return user


@pytest.fixture
def rich_creator(db):
    """Creator with 100 BDT withdrawable"""
    user = make_user(db, 'rich@test.com', 'richcreator', 'creator', balance='100.00')
    give_subscription(db, user, server_today() + timedelta(days=10))
    return user


@pytest.fixture
def donator(db):
    return make_user(db, 'donator@test.com', 'testdonator', 'donator')


@pytest.fixture
def admin_user(db):
    return make_user(db, 'admin@test.com', 'adminuser', 'admin', password='AdminPass123')


@pytest.fixture
def pending_donation(db, active_creator):
    """Gateway donation waiting for the webhook"""
    donation = Donation(
        creator_id=active_creator.id,
        amount=Decimal('50.00'),
        donor_name='Rahim',
        payment_status='pending',
        txn_id=f'DON_{active_creator.id}_1700000000000_A1B2C3',
        payment_id='rp_pay_1',
    )
    db.session.add(donation)
    db.session.commit()
    return donation


@pytest.fixture
def pending_withdrawal(db, rich_creator):
    """Withdrawal of 40 whose hold was already taken from the balance"""
    w = Withdrawal(
        user_id=rich_creator.id,
        amount=Decimal('40.00'),
        method='bkash',
        bank_name='bKash',
        bank_account_name='Rich Creator',
        bank_account_number='01700000000',
        status='pending',
    )
    rich_creator.current_amount = Decimal('60.00')
    db.session.add(w)
    db.session.commit()
    return w


def auth_header(user):
    """Authorization header for a user"""
    return {'Authorization': f'Bearer {generate_access_token(user.id)}'}


def balance_of(user_id):
    """Balance as stored, not as cached in the session"""
    _db.session.expire_all()
    return _db.session.get(User, user_id).current_amount


def checkout_ok(payment_url='https://payment.rupantorpay.com/pay/abc', payment_id='rp_pay_abc'):
    return {'success': True, 'payment_url': payment_url, 'payment_id': payment_id}


def verified(payment_status='completed', status=True):
    return {
        'success': True,
        'status': status,
        'payment_status': payment_status,
        'message': 'Payment verification completed',
    }
