# models/responses.py
from typing import Any, Generic, Optional, TypeVar
from pydantic import BaseModel

T = TypeVar("T")

class BaseResponse(BaseModel):
    status: str = "success"
    message: Optional[str] = None

class DataResponse(BaseResponse, Generic[T]):
    count: Optional[int] = None
    data: T

class ErrorResponse(BaseModel):
    status: str = "error"
    message: str
    details: Optional[Any] = None
