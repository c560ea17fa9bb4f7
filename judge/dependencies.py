"""Dependency injection for FastAPI endpoints."""

from typing import Annotated

from fastapi import Depends

from judge import state
from judge.db import PostgresRepository
from judge.errors import ServiceUnavailableError


def get_repository() -> PostgresRepository:
    """Get the problem repository.

    Raises:
        ServiceUnavailableError: If persistence is not enabled or failed to start.
    """
    if state.repository is None:
        raise ServiceUnavailableError(detail="Database not connected")
    return state.repository


Repository = Annotated[PostgresRepository, Depends(get_repository)]
