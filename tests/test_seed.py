"""Database seed behavior tests."""

from pathlib import Path

from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from pos_api.core.config import settings
from pos_api.core.security import verify_password
from pos_api.db.base import Base
from pos_api.db.seed import ensure_seed_data
from pos_api.models import DiningTable, MenuItem, Restaurant, User, Voucher


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def test_seed_creates_demo_restaurant_once(tmp_path: Path, monkeypatch) -> None:
    """Seeding an empty database creates the demo tenant; a second run is a no-op."""
    engine = _build_test_engine(tmp_path / "seed.db")
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    monkeypatch.setattr(settings, "admin_email", "owner@local.dev")
    monkeypatch.setattr(settings, "admin_password", "Admin123!")

    with testing_session_local() as session:
        assert ensure_seed_data(session) is True

    with testing_session_local() as session:
        assert ensure_seed_data(session) is False

        restaurant = session.scalar(select(Restaurant))
        assert restaurant.code == "DEMO"
        assert session.scalar(select(func.count(DiningTable.id))) == 6
        assert session.scalar(select(func.count(MenuItem.id))) == 3
        assert session.scalar(select(Voucher.code)) == "WELCOME10"

        admin = session.scalar(select(User).where(User.email == "owner@local.dev"))
        assert admin is not None
        assert admin.role == "ADMIN"
        assert admin.restaurant_id == restaurant.id
        assert verify_password("Admin123!", admin.password_hash)

        roles = set(session.scalars(select(User.role)).all())
        assert roles == {"ADMIN", "MANAGER", "SERVER", "KITCHEN"}
    engine.dispose()
