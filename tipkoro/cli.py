"""
Operational commands, available as `flask <command>`
"""
import click
from flask import current_app

from tipkoro import db
from tipkoro.models import User
from tipkoro.services.reconciliation_service import ReconciliationService


def register_commands(app):

    @app.cli.command('reconcile-pending')
    @click.option('--older-than', 'older_than', type=int, default=None,
                  help='Only payments pending for at least this many minutes')
    def reconcile_pending(older_than):
        """Re-verify stale pending payments with the gateway"""
        if older_than is None:
            older_than = current_app.config.get('PENDING_RECONCILE_MINUTES', 30)

        click.echo(f"🔍 Checking payments pending for more than {older_than} minutes...")
        summary = ReconciliationService.reconcile_pending(older_than)

        click.echo(f"📋 Checked: {summary['checked']}")
        click.echo(f"✅ Completed: {summary['completed']}")
        click.echo(f"❌ Failed: {summary['failed']}")
        click.echo(f"⏳ Still pending: {summary['pending']}")
        click.echo(f"↩️  Already settled: {summary['unchanged']}")
        if summary['errors']:
            click.echo(f"⚠️  Errors: {summary['errors']} (see log)")

    @app.cli.command('create-admin')
    @click.argument('email')
    @click.argument('username')
    @click.argument('password')
    def create_admin(email, username, password):
        """Create an admin user, or promote and reset an existing one"""
        email = email.strip().lower()
        username = username.strip().lower()

        admin = User.query.filter_by(email=email).first()

        if admin:
            admin.role = 'admin'
            admin.set_password(password)
            db.session.commit()
            click.echo(f"⚠️  User {email} already existed: promoted to admin and password reset")
            return

        if User.query.filter_by(username=username).first():
            raise click.ClickException(f"Username {username} is already taken")

        admin = User(
            email=email,
            username=username,
            display_name=username,
            role='admin'
        )
        admin.set_password(password)

        db.session.add(admin)
        db.session.commit()

        click.echo(f"✅ Admin {username} created")
