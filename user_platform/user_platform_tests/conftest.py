"""
Pytest configuration for User Service tests.

Points the service at an in-memory SQLite database before any service module
is imported, and generates a throwaway RSA key pair for token signing.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("LOG_DIR", None)

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from user_platform.user_platform.user_service.auth import TokenService
from user_platform.user_platform.user_service.db import Base, engine
from user_platform.user_platform.user_service.main import app
from user_platform.user_platform.user_service import models  # noqa: F401


@pytest.fixture(scope="session")
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def token_service(private_key):
    return TokenService(private_key, private_key.public_key())


@pytest.fixture(scope="session")
def client(token_service):
    app.state.token_service = token_service
    with TestClient(app) as c:
        yield c


@pytest.fixture(autouse=True)
def reset_database():
    # Drop all tables and recreate them before each test
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


@pytest.fixture
def db_session():
    """Create a database session for testing."""
    session = Session(bind=engine)
    yield session
    session.close()
