"""
Input validation for result lookups.

Provides the symbol/date-of-birth checks applied before anything is sent upstream.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from seeresult.errors import RequestValidationFailed

SYMBOL_RE = re.compile(r"^\d{8}[A-Z]?$", re.ASCII)
DOB_RE = re.compile(r"^\d{4}[-./]\d{2}[-./]\d{2}$", re.ASCII)


def _required_text(value: Any, field_name: str) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise PydanticCustomError("missing", "{field} is required", {"field": field_name})
    return text


def _check_symbol(value: Any) -> str:
    text = _required_text(value, "symbol")
    if not SYMBOL_RE.match(text):
        raise PydanticCustomError("symbol_format", "symbol must be 8 digits optionally followed by one uppercase letter")
    return text


def _check_dob(value: Any) -> str:
    text = _required_text(value, "dob")
    if not DOB_RE.match(text):
        raise PydanticCustomError("dob_format", "dob must look like YYYY-MM-DD, YYYY.MM.DD or YYYY/MM/DD")
    return text


class ResultQuery(BaseModel):
    """A validated gradesheet lookup."""

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(default=None, validate_default=True)  # type: ignore[assignment]
    dob: str = Field(default=None, validate_default=True)  # type: ignore[assignment]

    @field_validator("symbol", mode="before")
    @classmethod
    def validate_symbol(cls, v: Any) -> str:
        return _check_symbol(v)

    @field_validator("dob", mode="before")
    @classmethod
    def validate_dob(cls, v: Any) -> str:
        return _check_dob(v)


def _collect_errors(exc: ValidationError, data: Mapping[str, Any]) -> List[Dict[str, Any]]:
    errors = []
    for error in exc.errors():
        field_name = str(error["loc"][0]) if error["loc"] else ""
        errors.append({"field": field_name, "message": error["msg"], "value": data.get(field_name)})
    return errors


def validate_result_query(data: Mapping[str, Any]) -> ResultQuery:
    """
    Validate a lookup body.

    Raises:
        RequestValidationFailed: with one entry per offending field
    """
    try:
        return ResultQuery(symbol=data.get("symbol"), dob=data.get("dob"))
    except ValidationError as e:
        raise RequestValidationFailed(_collect_errors(e, data)) from e


def validate_symbol(value: Any) -> str:
    """Validate a bare symbol number (search endpoint)."""
    try:
        return _check_symbol(value)
    except PydanticCustomError as e:
        raise RequestValidationFailed([{"field": "symbol", "message": e.message(), "value": value}]) from e
