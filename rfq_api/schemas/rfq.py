from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

RfqStatus = Literal["draft", "published", "closed", "cancelled"]
DistributionType = Literal["all", "category", "specific"]

# Request bodies accept both snake_case and the camelCase used by the web panels.
# Strings are stripped before length checks, so blank text fails min_length.
_INPUT_CONFIG = ConfigDict(
    alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True
)


class AttachmentIn(BaseModel):
    url: str = Field(..., min_length=1)
    name: Optional[str] = None
    type: Optional[str] = None


class _RfqInput(BaseModel):
    @field_validator("expiry_date", mode="after", check_fields=False)
    @classmethod
    def _expiry_to_naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # expiry_date is stored as naive UTC.
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @model_validator(mode="after")
    def _check_budget_range(self):
        lo = getattr(self, "budget_min", None)
        hi = getattr(self, "budget_max", None)
        if lo is not None and hi is not None and lo > hi:
            raise ValueError("budget_min cannot exceed budget_max")
        return self


class RfqCreate(_RfqInput):
    model_config = _INPUT_CONFIG

    title: str = Field(..., min_length=1, max_length=300)
    description: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    unit: str = Field("pieces", min_length=1, max_length=50)
    distribution_type: DistributionType = "all"
    target_seller_ids: List[str] = Field(default_factory=list)
    product_id: Optional[str] = None
    category_id: Optional[str] = None
    # Only honoured for admins creating on a buyer's behalf.
    buyer_id: Optional[str] = None
    status: RfqStatus = "draft"
    expiry_date: Optional[datetime] = None
    specifications: Dict[str, str] = Field(default_factory=dict)
    attachments: List[AttachmentIn] = Field(default_factory=list)
    budget_min: Optional[float] = Field(None, ge=0)
    budget_max: Optional[float] = Field(None, ge=0)
    delivery_location: Optional[str] = Field(None, max_length=300)


class RfqPublicCreate(_RfqInput):
    model_config = _INPUT_CONFIG

    title: str = Field(..., min_length=1, max_length=300)
    description: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    unit: str = Field("pieces", min_length=1, max_length=50)
    product_id: Optional[str] = None
    category_id: Optional[str] = None
    contact_name: str = Field(..., min_length=1, max_length=200)
    contact_email: EmailStr
    contact_phone: Optional[str] = Field(None, max_length=50)
    expiry_date: Optional[datetime] = None
    specifications: Dict[str, str] = Field(default_factory=dict)
    budget_min: Optional[float] = Field(None, ge=0)
    budget_max: Optional[float] = Field(None, ge=0)
    delivery_location: Optional[str] = Field(None, max_length=300)


class RfqUpdate(_RfqInput):
    model_config = _INPUT_CONFIG

    title: Optional[str] = Field(None, min_length=1, max_length=300)
    description: Optional[str] = Field(None, min_length=1)
    quantity: Optional[int] = Field(None, ge=1)
    unit: Optional[str] = Field(None, min_length=1, max_length=50)
    distribution_type: Optional[DistributionType] = None
    product_id: Optional[str] = None
    category_id: Optional[str] = None
    target_seller_ids: Optional[List[str]] = None
    status: Optional[RfqStatus] = None
    expiry_date: Optional[datetime] = None
    specifications: Optional[Dict[str, str]] = None
    attachments: Optional[List[AttachmentIn]] = None
    budget_min: Optional[float] = Field(None, ge=0)
    budget_max: Optional[float] = Field(None, ge=0)
    delivery_location: Optional[str] = Field(None, max_length=300)


class DistributeRequest(BaseModel):
    model_config = _INPUT_CONFIG

    seller_ids: List[str] = Field(..., min_length=1)


class QuoteSubmit(BaseModel):
    model_config = _INPUT_CONFIG

    quote_price: float = Field(..., ge=0)
    quote_quantity: Optional[int] = Field(None, ge=0)
    delivery_time_days: Optional[int] = Field(None, ge=0, alias="deliveryTime")
    message: Optional[str] = None


# ---------- responses ----------


class SellerRef(BaseModel):
    id: str
    name: str
    company_name: Optional[str] = None
    email: Optional[str] = None


class PartyRef(BaseModel):
    id: str
    name: str
    email: Optional[str] = None


class ProductRef(BaseModel):
    id: str
    name: str
    sku: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None


class CategoryRef(BaseModel):
    id: str
    name: str
    description: Optional[str] = None


class AttachmentResponse(BaseModel):
    url: str
    name: Optional[str] = None
    type: Optional[str] = None


class QuoteResponse(BaseModel):
    id: str
    rfq_id: str
    seller_id: str
    seller: Optional[SellerRef] = None
    quote_price: float
    quote_quantity: Optional[int] = None
    delivery_time_days: Optional[int] = None
    message: Optional[str] = None
    status: str
    submitted_at: str

    model_config = {"from_attributes": True}


class RfqResponse(BaseModel):
    id: str
    title: str
    description: str
    product_id: Optional[str] = None
    category_id: Optional[str] = None
    quantity: int
    unit: str
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None
    delivery_location: Optional[str] = None
    buyer_id: Optional[str] = None
    admin_id: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    status: str
    distribution_type: str
    target_seller_ids: List[str] = []
    responses: List[QuoteResponse] = []
    expiry_date: Optional[str] = None
    specifications: Dict[str, str] = {}
    attachments: List[AttachmentResponse] = []
    product: Optional[ProductRef] = None
    category: Optional[CategoryRef] = None
    buyer: Optional[PartyRef] = None
    admin: Optional[PartyRef] = None
    target_sellers: Optional[List[SellerRef]] = None
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    message: str
