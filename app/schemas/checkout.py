# app/schemas/checkout.py
from typing import Literal, Optional
from pydantic import BaseModel, Field

from .affiliate import ReferralInfo
from .order import Order, ServiceType

CheckoutStep = Literal["details", "payment", "submitted"]
PickupTime = Literal["5-10", "15-20", "25-30", "custom"]


class CheckoutDetails(BaseModel):
    customer_name: str = ""
    contact_number: str = ""
    service_type: ServiceType = "dine-in"
    # Delivery
    address: str = ""
    landmark: str = ""
    # Pickup
    pickup_time: PickupTime = "5-10"
    custom_time: str = ""
    # Dine-in
    party_size: int = 1
    payment_method: str = "gcash"
    notes: str = ""


class CheckoutDetailsUpdate(BaseModel):
    """Form fields sent by the storefront; omitted fields keep their value."""
    customer_name: Optional[str] = None
    contact_number: Optional[str] = None
    service_type: Optional[ServiceType] = None
    address: Optional[str] = None
    landmark: Optional[str] = None
    pickup_time: Optional[PickupTime] = None
    custom_time: Optional[str] = None
    party_size: Optional[int] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class CheckoutState(BaseModel):
    step: CheckoutStep = "details"
    details: CheckoutDetails = Field(default_factory=CheckoutDetails)
    is_submitting: bool = False
    # Identifies the submission in flight; a reset clears it
    attempt_id: Optional[str] = None


class CheckoutStateResponse(CheckoutState):
    is_details_valid: bool


class CheckoutResult(BaseModel):
    order: Optional[Order] = None
    total: float
    message: str
    messenger_url: str
    referral: Optional[ReferralInfo] = None
    # Set when the order could not be saved; the Messenger hand-off still proceeds
    persist_error: Optional[str] = None
