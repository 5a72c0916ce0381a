from pydantic import BaseModel, Field
from typing import Optional


class ErrorResponse(BaseModel):
    error: str


class AnalyzeResponse(BaseModel):
    success: bool = True
    reportId: str
    shareUrl: str


class ChatResponse(BaseModel):
    response: str


class CreateSubscriptionResponse(BaseModel):
    subscriptionId: str


class ActivateSubscriptionResponse(BaseModel):
    success: bool = True


class CheckSubscriptionResponse(BaseModel):
    active: bool


class UsageResponse(BaseModel):
    pro: bool
    plan: str
    planName: str
    freeUploadsUsed: int
    freeUploadsLimit: int
    remaining: Optional[int] = Field(None, description="Free analyses left, null when unlimited")
