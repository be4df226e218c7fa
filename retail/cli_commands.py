"""
Flask CLI commands.

Commands:
- flask init-db: Create database tables
- flask create-user: Create a staff user
- flask verify-stock: Check stored stock against the inventory ledger
"""

import sys

import click
from sqlalchemy.exc import SQLAlchemyError

from retail.database import create_all, get_session
from retail.models import AppUser


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables that do not exist yet."""
        create_all()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('create-user')
    @click.option('--username', prompt=True, help='Login name')
    @click.option('--full-name', default='', help='Display name')
    @click.option('--role', default='staff', type=click.Choice(['staff', 'manager', 'admin']))
    def create_user(username, full_name, role):
        """Create a staff user that can act on orders and receipts."""
        db_session = get_session()
        username = username.strip()
        if not username:
            click.echo(click.style('Username is required.', fg='red'))
            sys.exit(1)

        existing = db_session.query(AppUser).filter_by(username=username).first()
        if existing:
            click.echo(click.style(f'A user named {username} already exists (ID {existing.id}).', fg='red'))
            sys.exit(1)

        try:
            user = AppUser(username=username, full_name=full_name or None, role=role, active=True)
            db_session.add(user)
            db_session.commit()
        except SQLAlchemyError as e:
            db_session.rollback()
            click.echo(click.style(f'Could not create user: {e}', fg='red'))
            sys.exit(1)

        click.echo(click.style(f'User {username} created (ID {user.id}).', fg='green'))

    @app.cli.command('verify-stock')
    @click.option('--product-id', type=int, default=None, help='Check a single product')
    def verify_stock_command(product_id):
        """Compare product stock with the sum of ledger movements."""
        from retail.services.stock_ledger_service import verify_stock

        db_session = get_session()
        discrepancies = verify_stock(db_session, product_id=product_id)
        db_session.rollback()

        if not discrepancies:
            click.echo(click.style('Stock matches the inventory ledger.', fg='green'))
            return

        for d in discrepancies:
            click.echo(
                f'#{d.product_id} {d.sku}: stock={d.stock_quantity} '
                f'ledger={d.ledger_quantity} diff={d.difference:+d}'
            )
        click.echo(click.style(f'{len(discrepancies)} product(s) out of sync.', fg='red'))
        sys.exit(1)
