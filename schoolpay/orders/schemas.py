from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime

_IDENTIFIER = r"^[a-zA-Z0-9_-]+$"


class StudentInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=100)
    id: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    # "class" is a keyword, exposed under its wire name through the alias
    student_class: Optional[str] = Field(None, alias="class", max_length=20)
    section: Optional[str] = Field(None, max_length=20)


class CreateOrderRequest(BaseModel):
    """Request to register a fee-payment order"""
    school_id: str = Field(..., min_length=1, max_length=100, pattern=_IDENTIFIER)
    trustee_id: str = Field(..., min_length=1, max_length=100, pattern=_IDENTIFIER)
    student_info: StudentInfo
    gateway_name: str = Field(..., min_length=1, max_length=50)
    custom_order_id: Optional[str] = Field(
        None, min_length=1, max_length=100, pattern=_IDENTIFIER,
        description="Generated when omitted"
    )


class OrderResponse(BaseModel):
    id: UUID
    school_id: str
    trustee_id: str
    student_info: dict
    gateway_name: str
    custom_order_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderListResponse(BaseModel):
    data: List[OrderResponse]
    count: int
