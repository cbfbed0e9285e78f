# Overview: Flask CLI command groups for bootstrap and ledger maintenance.

# backend/stockroom/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system seed-demo
#   Create a demo business with two branches, an owner and a few items.
#
# Ledger maintenance:
# - python -m flask ledger verify [--business-id 1]
#   Compare stock levels against the movement log; exits 1 on drift.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Branch, Business, Item, User
from .models.tenancy import ROLE_EMPLOYEE, ROLE_MANAGER, ROLE_OWNER
from .services.stock_service import verify_ledger


DEMO_ITEMS = [
    ("Flour", "FLR-001", "kg"),
    ("Sugar", "SUG-001", "kg"),
    ("Milk", "MLK-001", "l"),
    ("Paper Cups", "CUP-001", "piece"),
]


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('seed-demo')
@click.option('--name', 'business_name', default='Demo Bakery', help='Business name')
@with_appcontext
def seed_demo(business_name):
    """
    Seed a demo business.

    Creates:
    - One business with branches "Main" and "Warehouse"
    - Users: owner, manager (Main), employee (Main)
    - A handful of raw items

    Idempotent: an existing business with the same name is reused.
    """
    click.echo("START Seeding demo data...")

    business = db.session.query(Business).filter_by(name=business_name).first()
    if not business:
        business = Business(name=business_name, is_active=True)
        db.session.add(business)
        db.session.flush()
        click.echo(f"PASS Created business: {business.name} (ID: {business.id})")
    else:
        click.echo(f"PASS Using existing business: {business.name} (ID: {business.id})")

    branches = {}
    for branch_name in ("Main", "Warehouse"):
        branch = db.session.query(Branch).filter_by(business_id=business.id, name=branch_name).first()
        if not branch:
            branch = Branch(business_id=business.id, name=branch_name)
            db.session.add(branch)
            db.session.flush()
        branches[branch_name] = branch
    click.echo(f"PASS Branches: {', '.join(f'{b.name} (ID: {b.id})' for b in branches.values())}")

    users = [
        (f"owner_{business.id}", ROLE_OWNER, None),
        (f"manager_{business.id}", ROLE_MANAGER, branches["Main"].id),
        (f"employee_{business.id}", ROLE_EMPLOYEE, branches["Main"].id),
    ]
    for username, role, branch_id in users:
        user = db.session.query(User).filter_by(username=username).first()
        if not user:
            user = User(
                business_id=business.id,
                branch_id=branch_id,
                username=username,
                role=role,
            )
            db.session.add(user)
            db.session.flush()
        click.echo(f"  - {user.username} ({user.role}) ID: {user.id}")

    for name, sku, unit in DEMO_ITEMS:
        item = db.session.query(Item).filter_by(business_id=business.id, sku=sku).first()
        if not item:
            db.session.add(Item(business_id=business.id, name=name, sku=sku, unit=unit))

    db.session.commit()
    click.echo("DONE Demo data ready")


@click.group('ledger')
def ledger_group():
    """Stock ledger maintenance commands."""


@ledger_group.command('verify')
@click.option('--business-id', type=int, default=None, help='Limit the check to one business')
@with_appcontext
def verify_ledger_cli(business_id):
    """
    Report every stock level that disagrees with its movement log.

    Exit code 1 when any drift is found.
    """
    drift = verify_ledger(business_id=business_id)
    if not drift:
        click.echo("PASS Stock levels match the movement log")
        return

    click.echo(f"FAIL {len(drift)} stock level(s) drifted:")
    for row in drift:
        click.echo(
            f"  business={row['business_id']} branch={row['branch_id']} item={row['item_id']} "
            f"level={row['level_quantity']} movements={row['movement_total']}"
        )
    raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(ledger_group)
