from tipkoro import db
from datetime import datetime


class Donation(db.Model):
    __tablename__ = 'donations'
    __table_args__ = (
        db.CheckConstraint('amount > 0', name='ck_donations_amount_positive'),
    )

    id = db.Column(db.Integer, primary_key=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    donor_name = db.Column(db.String(100))
    donor_email = db.Column(db.String(120))
    message = db.Column(db.Text)
    is_anonymous = db.Column(db.Boolean, default=False)
    payment_status = db.Column(db.String(20), nullable=False, default='pending')  # pending, completed, failed
    txn_id = db.Column(db.String(64), unique=True, nullable=False)
    payment_id = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_public_dict(self):
        """Shape shown on the creator's public page"""
        return {
            'donor_name': 'Anonymous' if self.is_anonymous else (self.donor_name or 'Anonymous'),
            'amount': float(self.amount),
            'message': self.message,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def to_dict(self):
        return {
            'id': self.id,
            'creator_id': self.creator_id,
            'amount': float(self.amount),
            'donor_name': self.donor_name,
            'donor_email': self.donor_email,
            'message': self.message,
            'is_anonymous': self.is_anonymous,
            'payment_status': self.payment_status,
            'txn_id': self.txn_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Donation {self.txn_id} ৳{self.amount} - {self.payment_status}>'
