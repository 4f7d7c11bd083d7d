# Import all models
from .user import User
from .subscription import Subscription
from .donation import Donation
from .withdrawal import Withdrawal

__all__ = ['User', 'Subscription', 'Donation', 'Withdrawal']
