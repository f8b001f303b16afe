from __future__ import annotations

import json
from typing import Any, Dict, Iterator, Optional, Type, TypeVar

from fastapi import Header, Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from co_backend.config import get_api_key, get_environment
from co_backend.db import get_session
from co_backend.errors import OntologyError, UnauthorizedError, ValidationError

ParamsT = TypeVar("ParamsT", bound=BaseModel)


def get_db() -> Iterator[Session]:
    """
    FastAPI dependency that yields a DB session.
    """
    with get_session() as session:
        yield session


async def require_api_key(
    request: Request,
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
    """
    Dependency that enforces the bearer-key auth scheme.

    Behaviour:
    - OPTIONS (CORS preflight) requests always pass.
    - If CO_ENV is "production" or "staging" and CO_API_KEY is unset, fail
      closed with HTTP 500.
    - If CO_API_KEY is unset in other environments, allow all requests
      (dev mode).
    - If set, require ``Authorization: Bearer <key>``.
    """
    if request.method == "OPTIONS":
        return

    expected = get_api_key()
    if get_environment() in {"production", "staging"} and not expected:
        raise OntologyError("API key not configured for this environment")

    if not expected:
        return

    presented: Optional[str] = None
    if authorization:
        parts = authorization.split(None, 1)
        if len(parts) == 2 and parts[0].lower() == "bearer":
            presented = parts[1].strip()

    if not presented or presented != expected:
        raise UnauthorizedError("Unauthorized")


async def request_params(request: Request) -> Dict[str, Any]:
    """
    Collect operation parameters from the query string and, for POST, a
    JSON object body. Body fields win over query fields of the same name.
    """
    params: Dict[str, Any] = dict(request.query_params)
    if request.method != "POST":
        return params

    raw = await request.body()
    if not raw.strip():
        return params
    try:
        body = json.loads(raw)
    except ValueError as exc:
        raise ValidationError("Request body must be valid JSON") from exc
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    params.update(body)
    return params


def parse_params(model: Type[ParamsT], params: Dict[str, Any]) -> ParamsT:
    """
    Validate raw parameters into ``model``; failures become ValidationError.
    """
    try:
        return model.model_validate(params)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "parameters"
        raise ValidationError(f"{field}: {first.get('msg', 'invalid value')}") from exc


__all__ = ["get_db", "parse_params", "request_params", "require_api_key"]
