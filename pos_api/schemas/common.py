"""Shared field types for API schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import PlainSerializer

from pos_api.services.pricing import quantize_money
from pos_api.utils.time import ensure_utc

Money = Annotated[Decimal, PlainSerializer(lambda value: str(quantize_money(value)), return_type=str, when_used="json")]
OptionalMoney = Annotated[
    Decimal | None,
    PlainSerializer(
        lambda value: str(quantize_money(value)) if value is not None else None,
        return_type=str | None,
        when_used="json",
    ),
]
UTCDateTime = Annotated[datetime, PlainSerializer(lambda value: ensure_utc(value).isoformat(), return_type=str, when_used="json")]
OptionalUTCDateTime = Annotated[
    datetime | None,
    PlainSerializer(
        lambda value: ensure_utc(value).isoformat() if value is not None else None,
        return_type=str | None,
        when_used="json",
    ),
]
