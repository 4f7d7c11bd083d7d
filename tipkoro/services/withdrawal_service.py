"""
Withdrawal intake: hold the requested amount out of the creator's balance and
record a pending request for an administrator to settle.
"""
import logging
from typing import Dict, List

from tipkoro import db
from tipkoro.models import User, Withdrawal
from tipkoro.models.withdrawal import WITHDRAWAL_METHODS
from tipkoro.services import ledger
from tipkoro.services.errors import ValidationError, PreconditionError, NotFoundError, ConflictError
from tipkoro.utils.security import mask_sensitive_data
from tipkoro.utils.validators import parse_amount, clean_text

logger = logging.getLogger(__name__)

METHOD_LABELS = {
    'bkash': 'bKash',
    'nagad': 'Nagad',
    'bank': 'Bank Transfer',
}


class WithdrawalService:

    @staticmethod
    def validate(payload: dict) -> Dict:
        amount = parse_amount(payload.get('amount'), 'Invalid withdrawal amount')
        if amount <= 0:
            raise ValidationError('Invalid withdrawal amount')

        method = clean_text(payload.get('method')) or 'bkash'
        method = method.lower()
        if method not in WITHDRAWAL_METHODS:
            raise ValidationError(f"Invalid withdrawal method. Use one of: {', '.join(WITHDRAWAL_METHODS)}")

        account_name = clean_text(payload.get('bank_account_name'), 100)
        account_number = clean_text(payload.get('bank_account_number'), 50)
        if not account_name or not account_number:
            raise ValidationError('Account name and account number are required')

        bank_name = clean_text(payload.get('bank_name'), 100)
        if method == 'bank' and not bank_name:
            raise ValidationError('Bank name is required for bank transfers')

        return {
            'amount': amount,
            'method': method,
            'bank_name': bank_name or METHOD_LABELS[method],
            'bank_account_name': account_name,
            'bank_account_number': account_number,
        }

    @staticmethod
    def request_withdrawal(user: User, payload: dict) -> Dict:
        """
        Hold funds and create the pending withdrawal.

        The row insert and the guarded debit share one transaction; if the
        debit finds the balance short (a concurrent request got there first)
        the insert is rolled back with it.

        Returns:
            dict: {success, withdrawal_id, message}
        """
        if not user.is_creator:
            raise ValidationError('Only creators can request withdrawals')

        data = WithdrawalService.validate(payload)
        amount = data['amount']

        available = ledger.available_balance(user.id)
        if amount > available:
            logger.info(f"Withdrawal refused for user {user.id}: requested {amount}, available {available}")
            raise PreconditionError('Insufficient balance', available_balance=float(available))

        withdrawal = Withdrawal(user_id=user.id, status='pending', **data)

        try:
            db.session.add(withdrawal)
            db.session.flush()

            if not ledger.debit_balance(user.id, amount):
                # Compensate: the request must not exist without its hold
                db.session.rollback()
                available = ledger.available_balance(user.id)
                logger.warning(f"Balance hold lost the race for user {user.id}: "
                               f"requested {amount}, available {available}")
                raise PreconditionError('Insufficient balance', available_balance=float(available))

            db.session.commit()
        except PreconditionError:
            raise
        except Exception:
            db.session.rollback()
            logger.exception(f"Withdrawal request for user {user.id} rolled back")
            raise

        logger.info(f"Withdrawal {withdrawal.id} requested: user={user.id}, amount={amount}, "
                    f"method={data['method']}, account={mask_sensitive_data(data['bank_account_number'])}")

        return {
            'success': True,
            'withdrawal_id': withdrawal.id,
            'message': 'Withdrawal request submitted'
        }

    @staticmethod
    def settle(withdrawal_id: int, approve: bool, notes=None) -> Withdrawal:
        """Administrator decision on a pending withdrawal; rejection releases the hold"""
        withdrawal = Withdrawal.query.get(withdrawal_id)
        if not withdrawal:
            raise NotFoundError('Withdrawal not found')

        notes = clean_text(notes, 1000)

        try:
            if not ledger.settle_withdrawal(withdrawal, approve, notes):
                db.session.rollback()
                current = db.session.query(Withdrawal.status).filter(Withdrawal.id == withdrawal_id).scalar()
                raise ConflictError(f'Withdrawal already {current}', status=current)
            db.session.commit()
        except ConflictError:
            raise
        except Exception:
            db.session.rollback()
            logger.exception(f"Settling withdrawal {withdrawal_id} rolled back")
            raise

        db.session.refresh(withdrawal)
        logger.info(f"Withdrawal {withdrawal.id} {withdrawal.status} (user={withdrawal.user_id}, "
                    f"amount={withdrawal.amount})")
        return withdrawal

    @staticmethod
    def list_for_user(user: User) -> List[Dict]:
        withdrawals = user.withdrawals.order_by(Withdrawal.created_at.desc(), Withdrawal.id.desc()).all()
        return [w.to_dict() for w in withdrawals]

    @staticmethod
    def list_by_status(status=None) -> List[Withdrawal]:
        query = Withdrawal.query
        if status:
            query = query.filter_by(status=status)
        return query.order_by(Withdrawal.created_at.desc(), Withdrawal.id.desc()).all()
