"""Lending ceilings read from the single settings row."""

from pydantic import BaseModel, ConfigDict, Field


class LendingPolicy(BaseModel):
    """The five policy scalars gating lending transitions."""

    max_borrow_duration: int = Field(
        default=30,
        description="Days a copy may stay out, counted from the borrow date",
        ge=1,
    )

    max_borrow_limit: int = Field(
        default=3,
        description="Concurrent active borrows allowed per user",
        ge=1,
    )

    max_extension_limit: int = Field(
        default=2,
        description="Extensions allowed per borrow",
        ge=0,
    )

    max_booking_duration: int = Field(
        default=7,
        description="How many days ahead a booked copy must be due back",
        ge=1,
    )

    max_booking_limit: int = Field(
        default=3,
        description="Open bookings allowed per user per book",
        ge=1,
    )

    model_config = ConfigDict(from_attributes=True)


class LendingPolicyUpdate(BaseModel):
    """Partial update of the settings row - unset fields are left alone."""

    max_borrow_duration: int | None = Field(default=None, ge=1)
    max_borrow_limit: int | None = Field(default=None, ge=1)
    max_extension_limit: int | None = Field(default=None, ge=0)
    max_booking_duration: int | None = Field(default=None, ge=1)
    max_booking_limit: int | None = Field(default=None, ge=1)
