from tipkoro import db
from datetime import datetime

WITHDRAWAL_METHODS = ('bkash', 'nagad', 'bank')


class Withdrawal(db.Model):
    __tablename__ = 'withdrawals'
    __table_args__ = (
        db.CheckConstraint("method IN ('bkash', 'nagad', 'bank')", name='ck_withdrawals_method'),
        db.CheckConstraint('amount > 0', name='ck_withdrawals_amount_positive'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    method = db.Column(db.String(20), nullable=False, default='bkash')
    bank_name = db.Column(db.String(100), nullable=False)
    bank_account_name = db.Column(db.String(100), nullable=False)
    bank_account_number = db.Column(db.String(50), nullable=False)
    status = db.Column(db.String(20), nullable=False, default='pending')  # pending, approved, rejected
    notes = db.Column(db.Text)  # Admin notes
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    processed_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'amount': float(self.amount),
            'method': self.method,
            'bank_name': self.bank_name,
            'bank_account_name': self.bank_account_name,
            'bank_account_number': self.bank_account_number,
            'status': self.status,
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'processed_at': self.processed_at.isoformat() if self.processed_at else None,
        }

    def __repr__(self):
        return f'<Withdrawal ৳{self.amount} - {self.status}>'
