from tipkoro import db
from flask_login import UserMixin
from datetime import datetime
import bcrypt

ROLES = ('creator', 'donator', 'admin')


class User(UserMixin, db.Model):
    __tablename__ = 'users'
    __table_args__ = (
        db.CheckConstraint('current_amount >= 0', name='ck_users_current_amount_non_negative'),
        db.CheckConstraint("role IN ('creator', 'donator', 'admin')", name='ck_users_role'),
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    username = db.Column(db.String(50), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(100), nullable=False)
    password_hash = db.Column(db.String(128))
    role = db.Column(db.String(20), nullable=False, default='donator', index=True)

    # Profile
    bio = db.Column(db.Text, default='')
    profile_image_url = db.Column(db.String(500))
    cover_image_url = db.Column(db.String(500))

    # Money
    current_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    goal_amount = db.Column(db.Numeric(12, 2))

    # Mirror of the Subscription row, written only by tipkoro.services.ledger
    subscription_status = db.Column(db.String(20), default='inactive')
    subscription_expires_at = db.Column(db.Date)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    subscription = db.relationship('Subscription', backref='user', uselist=False)
    donations = db.relationship('Donation', backref='creator', lazy='dynamic')
    withdrawals = db.relationship('Withdrawal', backref='user', lazy='dynamic')

    @property
    def is_creator(self):
        return self.role == 'creator'

    @property
    def is_admin(self):
        return self.role == 'admin'

    def set_password(self, password):
        self.password_hash = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

    def check_password(self, password):
        if not self.password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode('utf-8'), self.password_hash.encode('utf-8'))
        except ValueError:
            return False

    def __repr__(self):
        return f'<User {self.username} ({self.role})>'
