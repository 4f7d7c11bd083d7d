from flask import Blueprint, jsonify
from sqlalchemy import func

from tipkoro import db
from tipkoro.models import User, Donation
from tipkoro.services.errors import NotFoundError
from tipkoro.services.subscription_status import describe

bp = Blueprint('public', __name__, url_prefix='/c')

RECENT_DONATIONS_LIMIT = 10


@bp.route('/<username>')
def creator_page(username):
    """Public creator profile; accepting_donations is evaluated on every view"""
    creator = User.query.filter_by(username=username.lower(), role='creator').first()
    if not creator:
        raise NotFoundError('Creator not found')

    status = describe(creator.subscription)

    total_received = db.session.query(func.coalesce(func.sum(Donation.amount), 0)).filter(
        Donation.creator_id == creator.id,
        Donation.payment_status == 'completed'
    ).scalar()

    recent = creator.donations.filter_by(payment_status='completed').order_by(
        Donation.created_at.desc()
    ).limit(RECENT_DONATIONS_LIMIT).all()

    return jsonify({
        'id': creator.id,
        'username': creator.username,
        'display_name': creator.display_name,
        'bio': creator.bio,
        'profile_image_url': creator.profile_image_url,
        'cover_image_url': creator.cover_image_url,
        'goal_amount': float(creator.goal_amount) if creator.goal_amount is not None else None,
        'total_received': float(total_received or 0),
        'accepting_donations': status['accepting_donations'],
        'paid_until': status['paid_until'],
        'recent_donations': [d.to_public_dict() for d in recent],
    })
