import logging

from fastapi import APIRouter

from judge.dependencies import Repository
from judge.errors import InvalidSubmissionError
from judge.languages import detect_language
from judge.models import JudgeRequest, JudgeResult, SubmissionPayload
from judge.verdict import judge_submission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/submissions", tags=["submissions"])


@router.post("", response_model=JudgeResult, response_model_exclude_none=True)
async def create_submission(payload: SubmissionPayload, repository: Repository) -> JudgeResult:
    if not payload.source_code.strip():
        raise InvalidSubmissionError(detail="No code provided")
    language = payload.language or detect_language(payload.filename)

    return await judge_submission(
        JudgeRequest(
            language=language,
            source_code=payload.source_code,
            problem_id=payload.problem_id,
            user_id=payload.user_id,
        ),
        repository,
    )
