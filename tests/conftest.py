import os

os.environ.setdefault("SQLALCHEMY_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("ENV", "test")

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from orderdesk.config import settings  # noqa: E402
from orderdesk.database import engine, get_session  # noqa: E402
from orderdesk.main import app  # noqa: E402
from orderdesk.models import Order, OrderEvent, User  # noqa: E402
from orderdesk.services.action_panel import guards  # noqa: E402
from orderdesk.utils.token import create_operator_token  # noqa: E402


@pytest.fixture
def session(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "invoice_dir", tmp_path / "invoices")
    SQLModel.metadata.create_all(engine)
    guards.clear()

    with Session(engine) as session:
        yield session

    SQLModel.metadata.drop_all(engine)
    guards.clear()


@pytest.fixture
def user(session):
    user = User(email="operator@example.com", full_name="Operator")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def make_order(session, user):
    def _make(**fields):
        values = {
            "user_id": user.id,
            "order_code": "ORD-1001",
            "customer_name": "Nguyen Van A",
            "phone": "0901234567",
            "product": "Ceramic vase",
            "amount": 350000,
        }
        values.update(fields)
        order = Order(**values)
        session.add(order)
        session.commit()
        session.refresh(order)
        return order

    return _make


@pytest.fixture
def add_event(session):
    def _add(order, event_type, payload=None, created_at=None):
        event = OrderEvent(
            order_id=order.id,
            event_type=event_type,
            payload=payload,
            created_at=created_at or datetime.utcnow(),
        )
        session.add(event)
        session.commit()
        session.refresh(event)
        return event

    return _add


@pytest.fixture
def client(session):
    def _get_session():
        yield session

    app.dependency_overrides[get_session] = _get_session
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(user):
    token = create_operator_token(user)
    return {"Authorization": f"Bearer {token}"}
