from pydantic import BaseModel, Field, field_validator
from typing import List, Literal, Optional


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., max_length=4000)


class ChatRequest(BaseModel):
    """Follow-up question; the full transcript is resent every time"""
    reportId: Optional[str] = Field(None, max_length=64)
    messages: List[ChatMessage] = Field(default_factory=list, max_length=50)


class CreateSubscriptionRequest(BaseModel):
    planId: str = ""
    uid: Optional[str] = None  # ignored, the verified token decides
    planName: str = ""

    @field_validator('planId', 'planName')
    @classmethod
    def strip(cls, v: str) -> str:
        return (v or "").strip()


class ActivateSubscriptionRequest(BaseModel):
    subscriptionId: str = ""
    paymentId: str = ""
    signature: str = ""


class CheckSubscriptionRequest(BaseModel):
    uid: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    currentMedications: Optional[str] = Field(None, max_length=2000)
    chronicConditions: Optional[str] = Field(None, max_length=2000)
