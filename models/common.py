"""
Shared pydantic base for API-facing models.

Python attributes are snake_case (and match the column names); the JSON
shape is camelCase.  Both spellings are accepted on input.
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def iso_day(value: Optional[Any], fallback: Optional[str] = None) -> str:
    """Truncate a stored date/timestamp to YYYY-MM-DD."""
    text = str(value) if value else (fallback or "")
    return text[:10]
