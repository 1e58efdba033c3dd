from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class PlanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    monthly_price: float
    yearly_price: float
    features: str | None
    is_active: bool


class PlanCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    monthly_price: float = Field(ge=0)
    yearly_price: float = Field(ge=0)
    features: str | None = None


class SubscriptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    school_id: int
    plan_id: int
    billing_cycle: str
    start_date: date
    end_date: date
    status: str
    payment_status: str
    transaction_ref: str | None
    created_at: datetime


class SubscriptionCreate(BaseModel):
    plan_name: str = Field(min_length=1, max_length=50)
    billing_cycle: Literal["monthly", "yearly"]


class CurrentSubscriptionResponse(BaseModel):
    has_active_subscription: bool
    subscription: SubscriptionOut | None


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    school_id: int
    subscription_id: int | None
    amount: float
    currency: str
    status: str
    reference: str | None
    created_at: datetime
