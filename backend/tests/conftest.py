"""
Pytest fixtures for erpcore backend tests.

Provides test database setup, two tenants with branches, tenant contexts,
signed bearer tokens and the Flask test client.
"""

import pytest
from erpcore import create_app
from erpcore.extensions import db
from erpcore.models import Company, CompanyBranch
from erpcore.services.security_service import create_access_token
from erpcore.tenant_context import TenantContext


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'JWT_SECRET_KEY': 'test-jwt-secret',
        'SEQUENCE_RETRY_BACKOFF': 0.001,
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
def company_a(db_session):
    """Create Company A (first tenant)."""
    company = Company(name="Company A - Acme Traders", code="ACME", is_active=True)
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def company_b(db_session):
    """Create Company B (second tenant)."""
    company = Company(name="Company B - Beta Supplies", code="BETA", is_active=True)
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def branch_a1(db_session, company_a):
    branch = CompanyBranch(tenant_id=company_a.id, name="Pune", code="PUN")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def branch_a2(db_session, company_a):
    branch = CompanyBranch(tenant_id=company_a.id, name="Mumbai", code="MUM")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def branch_b1(db_session, company_b):
    branch = CompanyBranch(tenant_id=company_b.id, name="Delhi", code="DEL")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def ctx_a(company_a):
    """Tenant context for a user of Company A (no branch selected)."""
    return TenantContext(tenant_id=company_a.id, actor_id=1)


@pytest.fixture(scope='function')
def ctx_b(company_b):
    return TenantContext(tenant_id=company_b.id, actor_id=2)


@pytest.fixture(scope='function')
def token_a(app, company_a):
    """Bearer token for an ordinary user of Company A."""
    return create_access_token(tenant_id=company_a.id, user_id=1, role="user")


@pytest.fixture(scope='function')
def admin_token_a(app, company_a):
    return create_access_token(tenant_id=company_a.id, user_id=3, role="admin")


@pytest.fixture(scope='function')
def token_b(app, company_b):
    return create_access_token(tenant_id=company_b.id, user_id=2, role="user")


def auth_headers(token: str, branch_id: int | None = None) -> dict:
    """Helper to create Authorization (and optional branch) headers."""
    headers = {'Authorization': f'Bearer {token}'}
    if branch_id is not None:
        headers['company-branch-id'] = str(branch_id)
    return headers
