"""
App Schemas

Request and response shapes for users, spending and income.
Request models also decode raw JSON bodies (see ``decode``); response models
never carry a password field.
"""
import datetime
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional, Sequence, Type, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ValidationError

DATE_FORMAT = "%Y-%m-%d"
_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

# SERIAL / INTEGER columns
ID_MIN = -2_147_483_648
ID_MAX = 2_147_483_647

# VARCHAR(255)
TEXT_MAX = 255

# NUMERIC(10, 2)
AMOUNT_STEP = Decimal("0.01")
AMOUNT_LIMIT = Decimal("100000000")

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_date(value: Any) -> datetime.date:
    """Parse a calendar date written exactly as YYYY-MM-DD."""
    if isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
        return value
    if not isinstance(value, str) or not _DATE_PATTERN.fullmatch(value):
        raise ValueError("Invalid date format. Use YYYY-MM-DD")
    try:
        return datetime.datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        raise ValueError(f"{value} is not a valid calendar date") from None


def quantize_amount(value: Decimal) -> Decimal:
    amount = value.quantize(AMOUNT_STEP, rounding=ROUND_HALF_UP)
    if abs(amount) >= AMOUNT_LIMIT:
        raise ValueError("amount must be between -99999999.99 and 99999999.99")
    return amount


def describe_errors(errors: Sequence[Dict[str, Any]]) -> str:
    """Condense pydantic error details into one client-facing sentence."""
    if not errors:
        return "Invalid request"
    first = errors[0]
    if first.get("type") in ("json_invalid", "model_type", "model_attributes_type", "dict_type"):
        return "Invalid request body"
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "path", "query")]
    message = str(first.get("msg", "invalid value")).removeprefix("Value error, ")
    if first.get("type") == "missing":
        message = "field is required"
    return f"{'.'.join(loc)}: {message}" if loc else message


def decode(schema: Type[ModelT], body: bytes) -> ModelT:
    """Decode a raw JSON request body into ``schema``."""
    try:
        return schema.model_validate_json(body or b"")
    except pydantic.ValidationError as e:
        raise ValidationError(describe_errors(e.errors())) from e


# ----------------------------------------------------------------------------
# Users
# ----------------------------------------------------------------------------
class UserCreate(BaseModel):
    model_config = ConfigDict(strict=True)

    username: str = Field(..., min_length=1, max_length=TEXT_MAX)
    password: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    model_config = ConfigDict(strict=True)

    username: str = Field(..., min_length=1, max_length=TEXT_MAX)
    # empty or missing keeps the stored hash
    password: Optional[str] = None


class UserCreated(BaseModel):
    id: int
    username: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    created_at: Optional[datetime.datetime] = None


# ----------------------------------------------------------------------------
# Spending / Income
# ----------------------------------------------------------------------------
class LedgerEntryUpdate(BaseModel):
    model_config = ConfigDict(strict=True)

    category: str = Field(..., min_length=1, max_length=TEXT_MAX)
    amount: Decimal
    date: datetime.date

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        return parse_date(value)

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_from_number(cls, value):
        # JSON numbers only; true/false and "12.5" are rejected
        if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
            raise ValueError("amount must be a number")
        # shortest repr, so 10.005 is not read as 10.00499...
        if isinstance(value, float):
            return Decimal(repr(value))
        return Decimal(value)

    @field_validator("amount")
    @classmethod
    def _quantize_amount(cls, value):
        return quantize_amount(value)


class LedgerEntryCreate(LedgerEntryUpdate):
    user_id: int = Field(..., gt=0, le=ID_MAX)


class LedgerEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    category: str
    amount: float
    date: datetime.date
    created_at: Optional[datetime.datetime] = None


class Created(BaseModel):
    id: int
    message: str


class Message(BaseModel):
    message: str
