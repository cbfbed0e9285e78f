"""
Pytest fixtures for stockroom backend tests.

Provides test database setup, tenant fixtures (two businesses, branches,
users of every role), catalog items, actor contexts and a test client.
"""

from decimal import Decimal

import pytest
from stockroom import create_app
from stockroom.extensions import db
from stockroom.models import Branch, Business, Item, OwnerBusinessLink, User, Vendor
from stockroom.models.stock import MOVEMENT_MANUAL_ADD
from stockroom.services.authorization_service import resolve_actor
from stockroom.services.schemas import StockAdjustment
from stockroom.services.stock_service import adjust_stock


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DB_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def business_a(db_session):
    """Create Business A (first tenant)."""
    business = Business(name="Business A - Corner Bakery", is_active=True)
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def business_b(db_session):
    """Create Business B (second tenant)."""
    business = Business(name="Business B - Harbor Cafe", is_active=True)
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def branch_main(db_session, business_a):
    branch = Branch(business_id=business_a.id, name="Main")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def branch_warehouse(db_session, business_a):
    branch = Branch(business_id=business_a.id, name="Warehouse")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def branch_b(db_session, business_b):
    branch = Branch(business_id=business_b.id, name="Harbor")
    db_session.add(branch)
    db_session.commit()
    return branch


def _user(db_session, business, username, role, branch=None):
    user = User(
        business_id=business.id,
        branch_id=branch.id if branch else None,
        username=username,
        role=role,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def owner(db_session, business_a, branch_main):
    """Owner of Business A; not bound to a branch."""
    return _user(db_session, business_a, "owner_a", "owner")


@pytest.fixture(scope='function')
def manager(db_session, business_a, branch_main):
    return _user(db_session, business_a, "manager_a", "manager", branch_main)


@pytest.fixture(scope='function')
def employee(db_session, business_a, branch_main):
    return _user(db_session, business_a, "employee_a", "employee", branch_main)


@pytest.fixture(scope='function')
def manager_b(db_session, business_b, branch_b):
    return _user(db_session, business_b, "manager_b", "manager", branch_b)


@pytest.fixture(scope='function')
def owner_link(db_session, owner, business_b):
    """Grant the Business A owner access to Business B."""
    link = OwnerBusinessLink(user_id=owner.id, business_id=business_b.id)
    db_session.add(link)
    db_session.commit()
    return link


@pytest.fixture(scope='function')
def owner_actor(db_session, owner):
    return resolve_actor(owner.id)


@pytest.fixture(scope='function')
def manager_actor(db_session, manager):
    return resolve_actor(manager.id)


@pytest.fixture(scope='function')
def employee_actor(db_session, employee):
    return resolve_actor(employee.id)


def _item(db_session, business, name, sku, **kwargs):
    item = Item(business_id=business.id, name=name, sku=sku, **kwargs)
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def flour(db_session, business_a):
    return _item(db_session, business_a, "Flour", "FLR-001", unit="kg")


@pytest.fixture(scope='function')
def sugar(db_session, business_a):
    return _item(db_session, business_a, "Sugar", "SUG-001", unit="kg")


@pytest.fixture(scope='function')
def composite_item(db_session, business_a):
    """Recipe item assembled from raw items; never stocked."""
    return _item(db_session, business_a, "Croissant", "CRS-001", is_composite=True)


@pytest.fixture(scope='function')
def item_b(db_session, business_b):
    return _item(db_session, business_b, "Coffee Beans", "CFB-001", unit="kg")


@pytest.fixture(scope='function')
def flour_b(db_session, business_b):
    """Business B's own catalog entry for flour (same SKU as Business A's)."""
    return _item(db_session, business_b, "Flour", "FLR-001", unit="kg")


@pytest.fixture(scope='function')
def vendor(db_session, business_a):
    """Vendor shared by every branch of Business A."""
    vendor = Vendor(business_id=business_a.id, code="VND-MILL", name="Mill Supplies")
    db_session.add(vendor)
    db_session.commit()
    return vendor


@pytest.fixture(scope='function')
def add_stock(db_session, manager):
    """Helper: put stock on a Business A branch through a manual_add movement."""
    def _add(branch, item, quantity):
        adjust_stock(resolve_actor(manager.id), StockAdjustment(
            branch_id=branch.id,
            item_id=item.id,
            quantity=Decimal(str(quantity)),
            transaction_type=MOVEMENT_MANUAL_ADD,
        ))
    return _add


@pytest.fixture(scope='function')
def headers():
    """Helper: identity headers as forwarded by the gateway."""
    def _headers(user, business_id=None, branch_id=None) -> dict:
        result = {'X-User-Id': str(user.id)}
        if business_id is not None:
            result['X-Business-Id'] = str(business_id)
        if branch_id is not None:
            result['X-Branch-Id'] = str(branch_id)
        return result
    return _headers
