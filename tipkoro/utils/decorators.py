from functools import wraps
from flask import abort
from flask_login import current_user


def admin_required(f):
    """Non-admins get a 404 so the admin surface is not discoverable"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated or not current_user.is_admin:
            abort(404)

        return f(*args, **kwargs)
    return decorated_function
