"""Pydantic models for Expense data and the API response envelope"""
from pydantic import BaseModel
from datetime import date
from typing import Any, Optional, Union

class Expense(BaseModel):
    """
    Represents a single recorded expense.
    `id` is assigned by the store at insertion time; `date` serializes as YYYY-MM-DD.
    Integral amounts stay ints, so 12 is returned as 12 rather than 12.0.
    """
    id: int
    amount: Union[int, float]
    description: str
    category: str
    date: date

class ApiResponse(BaseModel):
    """Uniform {success, data|error} wrapper. Unset keys are dropped on output."""
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    details: Optional[str] = None
