from pydantic import BaseModel, Field, field_validator


class WebhookEventIn(BaseModel):
    name: str = ""
    data: dict = Field(default_factory=dict)

    # malformed envelopes fall through to the unknown-event no-op
    @field_validator("name", mode="before")
    @classmethod
    def name_or_blank(cls, v) -> str:
        return v if isinstance(v, str) else ""

    @field_validator("data", mode="before")
    @classmethod
    def data_or_empty(cls, v) -> dict:
        return v if isinstance(v, dict) else {}


class WebhookAckOut(BaseModel):
    received: bool = True


class ErrorOut(BaseModel):
    error: str


class CheckoutCreateIn(BaseModel):
    planId: str | None = Field(default=None, max_length=64)
    successUrl: str | None = Field(default=None, max_length=2048)
    cancelUrl: str | None = Field(default=None, max_length=2048)


class CheckoutCreateOut(BaseModel):
    clientSecret: str | None = None
    paymentIntentId: str
    env: str
