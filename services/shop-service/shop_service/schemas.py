from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class HealthResponse(BaseModel):
    status: Literal["ok"]


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    username: str
    password: str


class UserOut(BaseModel):
    """Outward view of a user; the password hash is never part of it."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    created_at: str
    updated_at: str


class LoginResponse(BaseModel):
    token: str
    user: UserOut


class CreateOrderRequest(BaseModel):
    order_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    currency: str = Field(..., min_length=3, max_length=3)
    user_email: Optional[EmailStr] = None


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: str
    payment_id: str
    payment_intent_id: str
    status: str
    amount: Decimal
    currency: str
    processed_at: datetime
    user: UserOut


class RefundOrderRequest(BaseModel):
    payment_id: str = Field(..., min_length=1)
    reason: Optional[str] = None


class RefundResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    payment_id: str
    amount: Decimal
    status: str
    created_at: datetime


class PaymentStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    status: str
    amount: Decimal
    updated_at: datetime


class PaymentIntentRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    currency: str = Field(..., min_length=3, max_length=3)
    description: str = ""


class PaymentIntentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    client_secret: str
    status: str
