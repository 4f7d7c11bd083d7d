import jwt
from datetime import datetime, timedelta
from typing import Optional
from flask import current_app, jsonify

from tipkoro import login_manager

ACCESS_PURPOSE = 'access'


def generate_access_token(user_id: int, expires_in: Optional[int] = None) -> str:
    """
    Generate a bearer token for API access

    Args:
        user_id: User ID
        expires_in: Lifetime in seconds (default: ACCESS_TOKEN_EXPIRES)

    Returns:
        JWT token
    """
    if expires_in is None:
        expires_in = current_app.config.get('ACCESS_TOKEN_EXPIRES', 86400)

    payload = {
        'user_id': user_id,
        'exp': datetime.utcnow() + timedelta(seconds=expires_in),
        'iat': datetime.utcnow(),
        'purpose': ACCESS_PURPOSE
    }

    return jwt.encode(
        payload,
        current_app.config['SECRET_KEY'],
        algorithm='HS256'
    )


def verify_access_token(token: str) -> Optional[int]:
    """
    Verify and decode a bearer token

    Args:
        token: JWT token

    Returns:
        user_id if valid, None if invalid/expired
    """
    try:
        payload = jwt.decode(
            token,
            current_app.config['SECRET_KEY'],
            algorithms=['HS256']
        )
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None

    if payload.get('purpose') != ACCESS_PURPOSE:
        return None

    return payload.get('user_id')


def bearer_token(header_value: Optional[str]) -> Optional[str]:
    """Extract the token from an 'Authorization: Bearer <token>' header"""
    if not header_value:
        return None
    scheme, _, token = header_value.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def mask_sensitive_data(data: str, visible_chars: int = 4) -> str:
    """
    Mask account numbers for logs

    Args:
        data: Data to mask
        visible_chars: Trailing characters left visible

    Returns:
        Masked data
    """
    if not data or len(data) <= visible_chars:
        return '*' * len(data or '')
    return '*' * (len(data) - visible_chars) + data[-visible_chars:]


@login_manager.request_loader
def load_user_from_request(request):
    from tipkoro.models import User

    token = bearer_token(request.headers.get('Authorization'))
    if not token:
        return None

    user_id = verify_access_token(token)
    if user_id is None:
        return None

    return User.query.get(int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'error': 'User not authenticated'}), 401
