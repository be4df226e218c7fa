import os
import uuid

import pytest
from sqlalchemy import func, select

from config import TestingConfig
from retail import create_app
from retail.database import Base, create_all, get_engine, get_session
from retail.models import AppUser, Customer, InventoryTransaction, Order, OrderItem, Product, Supplier
from retail.services import product_service, stock_in_service


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (fresh SQLite file)."""
    uri = TestingConfig.SQLALCHEMY_DATABASE_URI
    if uri.startswith('sqlite:///'):
        path = uri[len('sqlite:///'):]
        if os.path.exists(path):
            os.remove(path)

    app = create_app('config.TestingConfig')
    create_all()
    yield app

    get_session().remove()
    get_engine().dispose()


@pytest.fixture(scope='function', autouse=True)
def clean_tables(app):
    """Empty every table after each test."""
    yield
    session = get_session()
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.remove()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session shared with the code under test (same thread)."""
    session = get_session()
    yield session
    session.rollback()


@pytest.fixture(scope='function')
def user(session):
    """Create an active staff user. Returns its id."""
    suffix = str(uuid.uuid4())[:8]
    user = AppUser(username=f'staff-{suffix}', full_name='Staff User', role='staff', active=True)
    session.add(user)
    session.commit()
    return user.id


@pytest.fixture(scope='function')
def customer(session):
    """Create a customer. Returns its id."""
    customer = Customer(name='Ana Torres', phone='555-0101', email='ana@example.com')
    session.add(customer)
    session.commit()
    return customer.id


@pytest.fixture(scope='function')
def supplier(session):
    """Create a supplier. Returns its id."""
    supplier = Supplier(name='Acme Wholesale', contact_person='Luis', phone='555-0199')
    session.add(supplier)
    session.commit()
    return supplier.id


@pytest.fixture(scope='function')
def make_product(session, user, supplier):
    """
    Factory for products. Stock is received through a confirmed stock-in
    receipt so the ledger always matches the stored quantity.
    """
    def _make_product(stock=0, price='25.00', cost='10.00', min_stock=0, sku=None, name=None):
        suffix = str(uuid.uuid4())[:8]
        product = product_service.create_product(
            session,
            sku=sku or f'SKU-{suffix}',
            name=name or f'Product {suffix}',
            price=price,
            min_stock=min_stock,
        )
        if stock:
            stock_in_service.create_stock_in(
                session,
                supplier_id=supplier,
                items=[{'product_id': product.id, 'quantity': stock, 'unit_cost': cost}],
                actor_id=user,
                status='confirmed',
            )
        return product.id

    return _make_product


@pytest.fixture(scope='function')
def product(make_product):
    """Active product with 10 units in stock at 25.00."""
    return make_product(stock=10, price='25.00')


@pytest.fixture(scope='function')
def stock_of(session):
    """Read a product's stored stock straight from the database."""
    def _stock_of(product_id):
        return session.execute(
            select(Product.stock_quantity).where(Product.id == product_id)
        ).scalar_one()
    return _stock_of


@pytest.fixture(scope='function')
def row_counts(session):
    """Row counts of the tables touched by the order workflow."""
    def _row_counts():
        return {
            model.__tablename__: session.execute(select(func.count()).select_from(model)).scalar_one()
            for model in (Order, OrderItem, InventoryTransaction)
        }
    return _row_counts


@pytest.fixture(scope='function')
def authenticated_client(client, user):
    """Client whose session carries the acting user."""
    with client.session_transaction() as sess:
        sess['user_id'] = user
    return client
