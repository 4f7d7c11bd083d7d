from tipkoro import db
from datetime import datetime


class Subscription(db.Model):
    """Creator's platform subscription, one row per creator, extended in place"""
    __tablename__ = 'subscriptions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True, nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)  # price of the last payment
    paid_until = db.Column(db.Date, index=True)  # None after a failed first purchase
    previous_paid_until = db.Column(db.Date)  # restored if the in-flight payment fails
    is_active = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(db.String(20), default='pending')  # pending, active, failed
    last_payment_txn_id = db.Column(db.String(64), index=True)
    payment_id = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'amount': float(self.amount),
            'paid_until': self.paid_until.isoformat() if self.paid_until else None,
            'is_active': self.is_active,
            'status': self.status,
            'last_payment_txn_id': self.last_payment_txn_id,
        }

    def __repr__(self):
        return f'<Subscription user={self.user_id} until={self.paid_until} active={self.is_active}>'
