from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Outcome(str, Enum):
    """How a single testcase ended."""

    PASSED = "passed"
    WRONG_ANSWER = "wrong_answer"
    TIME_LIMIT_EXCEEDED = "time_limit_exceeded"
    RUNTIME_ERROR = "runtime_error"
    SANDBOX_ERROR = "sandbox_error"


class Verdict(str, Enum):
    """Internal verdict; ``status`` collapses it to accepted/rejected."""

    ACCEPTED = "accepted"
    WRONG_ANSWER = "wrong_answer"
    TIME_LIMIT_EXCEEDED = "time_limit_exceeded"
    RUNTIME_ERROR = "runtime_error"
    SANDBOX_ERROR = "sandbox_error"
    COMPILE_ERROR = "compile_error"
    INVALID_SUBMISSION = "invalid_submission"

    @property
    def status(self) -> str:
        return "accepted" if self is Verdict.ACCEPTED else "rejected"

    @classmethod
    def from_outcome(cls, outcome: Outcome) -> "Verdict":
        if outcome is Outcome.PASSED:
            return cls.ACCEPTED
        return cls(outcome.value)


class Testcase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    input: str
    output: str
    weight: int = Field(default=1, ge=0)
    is_sample: bool = False

    @field_validator("weight", mode="before")
    @classmethod
    def default_weight(cls, v):
        return 1 if v is None else v


class JudgeRequest(BaseModel):
    language: str
    source_code: str
    problem_id: int
    user_id: int = 1


class TestcaseReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    testcase_id: int
    is_sample: bool
    outcome: Outcome
    expected: str | None = None
    actual: str | None = None
    message: str | None = None

    @property
    def passed(self) -> bool:
        return self.outcome is Outcome.PASSED


class CompileResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    log: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class JudgeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int
    total: int
    status: Literal["accepted", "rejected"]
    verdict: Verdict
    compile_log: str | None = None
    runtime_log: str | None = None
    execution_time_ms: int = 0
    submission_id: int | None = None


class SubmissionRecord(BaseModel):
    """The terminal row written for one judging run."""

    user_id: int
    problem_id: int
    language: str
    source_code: str
    status: str
    verdict: str
    score: int
    total: int
    compile_log: str | None = None
    runtime_log: str | None = None
    execution_time_ms: int


class LanguageInfo(BaseModel):
    key: str
    label: str
    extensions: list[str]


class LanguagesResponse(BaseModel):
    languages: list[LanguageInfo]


class SubmissionPayload(BaseModel):
    """Body of ``POST /submissions``. ``language`` may be inferred from ``filename``."""

    source_code: str
    problem_id: int
    user_id: int = 1
    language: str | None = None
    filename: str | None = None
