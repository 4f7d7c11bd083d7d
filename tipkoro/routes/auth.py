import re
import logging
from flask import Blueprint, request, jsonify
from sqlalchemy.exc import IntegrityError

from tipkoro import db
from tipkoro.models import User
from tipkoro.services.errors import ValidationError, ConflictError
from tipkoro.utils.security import generate_access_token
from tipkoro.utils.validators import clean_text, json_object

bp = Blueprint('auth', __name__, url_prefix='/auth')
logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r'^[a-z0-9_]{3,50}$')
SELF_SERVICE_ROLES = ('donator', 'creator')
MIN_PASSWORD_LENGTH = 6


@bp.route('/register', methods=['POST'])
def register():
    data = json_object(request.get_json(silent=True))

    email = (clean_text(data.get('email'), 120) or '').lower()
    username = (clean_text(data.get('username'), 50) or '').lower()
    display_name = clean_text(data.get('display_name'), 100) or username
    password = data.get('password') or ''
    role = clean_text(data.get('role')) or 'donator'

    # Validations
    if '@' not in email:
        raise ValidationError('A valid email is required')
    if not USERNAME_PATTERN.match(username):
        raise ValidationError('Username must be 3-50 characters: letters, numbers or underscore')
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError('Invalid role')

    if User.query.filter_by(email=email).first():
        raise ConflictError('Email already registered')
    if User.query.filter_by(username=username).first():
        raise ConflictError('Username already taken')

    user = User(
        email=email,
        username=username,
        display_name=display_name,
        role=role
    )
    user.set_password(password)

    try:
        db.session.add(user)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('Email or username already registered')

    logger.info(f"New {role} registered: {username} (id={user.id})")

    return jsonify({
        'success': True,
        'user_id': user.id,
        'access_token': generate_access_token(user.id)
    }), 201


@bp.route('/token', methods=['POST'])
def token():
    data = json_object(request.get_json(silent=True))
    email = (clean_text(data.get('email')) or '').lower()
    password = data.get('password') or ''

    user = User.query.filter_by(email=email).first()
    if not user or not isinstance(password, str) or not user.check_password(password):
        logger.info(f"Failed token request for {email or '[no email]'}")
        return jsonify({'error': 'Invalid email or password'}), 401

    return jsonify({
        'access_token': generate_access_token(user.id),
        'token_type': 'Bearer'
    })
