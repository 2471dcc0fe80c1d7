"""
Pydantic models for request bodies that only exist at the HTTP boundary.
"""
from typing import List

from pydantic import BaseModel


class IdsRequest(BaseModel):
    ids: List[str] = []
