"""Shared SQLAlchemy base declarative class and model imports."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


# Import model modules so metadata is populated before create_all.
from pos_api.models import audit_log as _audit_log  # noqa: E402,F401
from pos_api.models import gift_card as _gift_card  # noqa: E402,F401
from pos_api.models import menu as _menu  # noqa: E402,F401
from pos_api.models import order as _order  # noqa: E402,F401
from pos_api.models import payment as _payment  # noqa: E402,F401
from pos_api.models import restaurant as _restaurant  # noqa: E402,F401
from pos_api.models import user as _user  # noqa: E402,F401
from pos_api.models import voucher as _voucher  # noqa: E402,F401
