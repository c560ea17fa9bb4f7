from typing import Dict

from fastapi import APIRouter

from judge import state
from judge.sandbox import is_docker_available

router = APIRouter()


@router.get("/health")
async def health() -> Dict[str, str]:
    sandbox_status = "healthy" if await is_docker_available(timeout=3) else "unavailable"
    database_status = "connected" if state.repository is not None else "disabled"
    return {"status": "ok", "sandbox": sandbox_status, "database": database_status}
