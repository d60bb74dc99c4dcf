from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional

PaymentProvider = Literal["ZapPay", "GlitchPay", "LagPay"]
ChargeStatus = Literal["success", "failed"]


class ApiModel(BaseModel):
    # Wire format is camelCase; Python attributes stay snake_case.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Product(ApiModel):
    id: str
    name: str
    description: str = ""
    price_minor: int = Field(gt=0)


class CartLine(ApiModel):
    product_id: str
    quantity: int


class CheckoutRequest(ApiModel):
    items: List[CartLine] = Field(default_factory=list)
    payment_provider: Optional[str] = None

    @field_validator("payment_provider", mode="before")
    @classmethod
    def _non_string_provider_is_unset(cls, value):
        # Anything that is not a provider name means "pick one at random".
        return value if isinstance(value, str) else None


class CheckoutResponse(ApiModel):
    order_id: str
    payment_provider: PaymentProvider


class ErrorResponse(ApiModel):
    error: str


class ProviderConfig(ApiModel):
    min_ms: int
    max_ms: int
    failure_rate: float


class ChargeResult(ApiModel):
    provider: PaymentProvider
    status: ChargeStatus
    latency_ms: int
    drawn_latency_ms: int


class Order(ApiModel):
    id: str
    total_minor: int
    items: List[CartLine]
