# app/schemas/affiliate.py
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field, ValidationInfo, field_validator

AffiliateStatus = Literal["active", "inactive", "suspended"]


class AffiliateBase(BaseModel):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    status: AffiliateStatus = "active"
    notes: Optional[str] = None


class AffiliateCreate(AffiliateBase):
    """
    Payload for a new affiliate. When `referral_code` is omitted a code is
    generated from the name.
    """
    name: str = Field(..., min_length=1)
    referral_code: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()

    @field_validator("referral_code")
    @classmethod
    def code_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("referral_code must not be blank")
        return v.strip() if v else v


class AffiliateUpdate(BaseModel):
    """Partial update: only the fields that were sent are written."""
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    referral_code: Optional[str] = Field(None, min_length=1)
    status: Optional[AffiliateStatus] = None
    notes: Optional[str] = None

    # Validators only run for fields that were sent, so None here is an explicit null
    @field_validator("name", "referral_code", "status")
    @classmethod
    def required_fields_not_null(cls, v: Optional[str], info: ValidationInfo) -> str:
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("name", "referral_code")
    @classmethod
    def not_blank(cls, v: str, info: ValidationInfo) -> str:
        if not v.strip():
            raise ValueError(f"{info.field_name} must not be blank")
        return v.strip()


class Affiliate(AffiliateBase):
    id: str
    referral_code: str
    created_at: datetime
    updated_at: datetime


class ReferralInfo(BaseModel):
    referral_code: str
    affiliate_name: str
    affiliate_id: str


class GeneratedCode(BaseModel):
    referral_code: str
    referral_link: str
