"""Request body models for the HTTP routes."""

from typing import Optional

import pydantic
from pydantic import BaseModel, conint, constr

from models.chain.errors import ValidationError

MAX_TEXT_LENGTH = 2000
MAX_GENERATE_LENGTH = 2000


class InputRequest(BaseModel):
    """Body of POST /input"""
    input: constr(strict=True, min_length=1, max_length=MAX_TEXT_LENGTH)


class GenerateRequest(BaseModel):
    """Body of POST /generate; both fields are optional"""
    start: Optional[constr(strict=True, min_length=1, max_length=MAX_TEXT_LENGTH)] = None
    max_length: Optional[conint(strict=True, ge=1, le=MAX_GENERATE_LENGTH)] = None


def parse_request(model, payload):
    """
    Validate a decoded JSON body against a request model.

    Args:
        model: Request model class
        payload: Decoded JSON body, None when the body was not valid JSON

    Returns:
        BaseModel: The validated request

    Raises:
        ValidationError: Naming the first offending field, or "body" when the
            payload is not a JSON object
    """
    if not isinstance(payload, dict):
        raise ValidationError("body", "expected a JSON object")

    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "body"
        raise ValidationError(field, first["msg"]) from e
