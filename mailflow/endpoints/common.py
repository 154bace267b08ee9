from typing import TypeVar

from fastapi import HTTPException
from result import Result, is_err

from ..app_context import AppContext, Application
from ..errors import EngineError

T = TypeVar("T")


def get_context(owner_id: str) -> AppContext:
    context: AppContext = Application.get_current_context()
    if owner_id not in context.accounts:
        raise HTTPException(status_code=404, detail="Account not found")
    return context


def unwrap(result: Result[T, EngineError]) -> T:
    if is_err(result):
        error = result.err_value
        raise HTTPException(status_code=error.status_code, detail=error.message)
    return result.ok_value
