import os
from dotenv import load_dotenv

load_dotenv()

# Project base directory
basedir = os.path.abspath(os.path.dirname(__file__))


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-key-change-in-production'

    # Database - absolute path so the CLI and the server share one file
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'instance', 'tipkoro.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # RupantorPay
    RUPANTORPAY_API_KEY = os.environ.get('RUPANTORPAY_API_KEY')
    RUPANTORPAY_BASE_URL = os.environ.get('RUPANTORPAY_BASE_URL') or 'https://payment.rupantorpay.com'
    RUPANTORPAY_TIMEOUT = int(os.environ.get('RUPANTORPAY_TIMEOUT', 15))

    # 'gateway' settles through the webhook, 'simulated' settles instantly
    PAYMENT_MODE = os.environ.get('PAYMENT_MODE', 'gateway')

    # Redirect targets
    FRONTEND_URL = os.environ.get('FRONTEND_URL') or 'http://localhost:5173'
    WEBHOOK_URL = os.environ.get('WEBHOOK_URL')

    # Money rules (BDT)
    MIN_DONATION_AMOUNT = 10
    SUBSCRIPTION_MONTHLY_PRICE = 100

    # Auth
    ACCESS_TOKEN_EXPIRES = int(os.environ.get('ACCESS_TOKEN_EXPIRES', 86400))

    # Pending payments older than this are re-verified by `flask reconcile-pending`
    PENDING_RECONCILE_MINUTES = int(os.environ.get('PENDING_RECONCILE_MINUTES', 30))

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE = os.environ.get('LOG_FILE', os.path.join('logs', 'tipkoro.log'))
