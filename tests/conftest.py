import pytest
import os
from datetime import date
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SEED_DEFAULT_CRITERIA"] = "false"

from app.database import Base, get_db, enable_sqlite_foreign_keys
from app.main import app
from app.models.user import User, UserRole
from app.models.employee import Employee, EmployeeStatus
from app.services import auth as auth_service
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_session():
    """A fresh in-memory database per test, so service-level commits and rollbacks stay isolated."""
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


def _make_user(db_session, email, role, full_name, with_employee=True, status=EmployeeStatus.active):
    user = User(
        email=email,
        hashed_password=auth_service.get_password_hash("Password123!"),
        role=role,
        is_active=True,
        full_name=full_name,
    )
    db_session.add(user)
    db_session.flush()
    if with_employee:
        first, _, last = full_name.partition(" ")
        db_session.add(Employee(
            user_id=user.id,
            first_name=first,
            last_name=last,
            email=email,
            division="Operations",
            position="Staff",
            join_date=date(2023, 1, 9),
            status=status,
        ))
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture(scope="function")
def admin_user(db_session):
    """System administrator without an employee record."""
    return _make_user(db_session, "admin@example.com", UserRole.ADMIN, "System Admin", with_employee=False)


@pytest.fixture(scope="function")
def hr_user(db_session):
    return _make_user(db_session, "hr@example.com", UserRole.HR, "Hana Rahman")


@pytest.fixture(scope="function")
def staff_user(db_session):
    return _make_user(db_session, "budi@example.com", UserRole.STAFF, "Budi Santoso")


@pytest.fixture(scope="function")
def other_staff_user(db_session):
    return _make_user(db_session, "citra@example.com", UserRole.STAFF, "Citra Lestari")


@pytest.fixture(scope="function")
def make_employee(db_session):
    """Factory for roster employees that have no login."""
    def _make_employee(first_name, status=EmployeeStatus.active):
        employee = Employee(first_name=first_name, last_name="Test", status=status)
        db_session.add(employee)
        db_session.commit()
        return employee
    return _make_employee


@pytest.fixture(scope="function")
def get_token():
    """Helper fixture to create access tokens."""
    def _get_token(user):
        return auth_service.create_access_token(data={
            "sub": user.email,
            "role": user.role.value,
            "user_id": user.id,
        })
    return _get_token


@pytest.fixture(scope="function")
def auth_headers(get_token):
    def _auth_headers(user):
        return {"Authorization": f"Bearer {get_token(user)}"}
    return _auth_headers


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
