"""Testcase reads and submission writes against PostgreSQL."""

import logging
from datetime import UTC, datetime

import psycopg

from judge.db.core import _get_connection
from judge.errors import PersistenceError
from judge.models import SubmissionRecord, Testcase

_logger = logging.getLogger(__name__)


async def fetch_testcases(problem_id: int) -> list[Testcase]:
    """Testcases of a problem in ascending id order."""
    try:
        async with _get_connection() as conn:
            cur = await conn.execute(
                """
                SELECT id, input_data, output_data, weight, is_sample
                FROM testcase
                WHERE problem_id = %s
                ORDER BY id
                """,
                (problem_id,),
            )
            rows = await cur.fetchall()
    except psycopg.Error as e:
        raise PersistenceError(detail=f"Failed to retrieve testcases: {e}", problem_id=problem_id) from e

    return [
        Testcase(id=row[0], input=row[1], output=row[2], weight=row[3], is_sample=bool(row[4]))
        for row in rows
    ]


async def insert_submission(record: SubmissionRecord) -> int:
    """Write the terminal row for a judging run and return its id."""
    try:
        async with _get_connection() as conn:
            row = await (await conn.execute(
                """
                INSERT INTO submission (
                    user_id, problem_id, language, source_code,
                    status, verdict, score, total, compile_log, runtime_log,
                    execution_time_ms, finished_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (
                    record.user_id,
                    record.problem_id,
                    record.language,
                    record.source_code,
                    record.status,
                    record.verdict,
                    record.score,
                    record.total,
                    record.compile_log,
                    record.runtime_log,
                    record.execution_time_ms,
                    datetime.now(UTC),
                ),
            )).fetchone()
    except psycopg.Error as e:
        raise PersistenceError(detail=f"Failed to insert submission: {e}") from e
    _logger.debug("Inserted submission %d for problem %d", row[0], record.problem_id)
    return row[0]


class PostgresRepository:
    """Problem repository and submission store backed by the connection pool."""

    async def fetch_testcases(self, problem_id: int) -> list[Testcase]:
        return await fetch_testcases(problem_id)

    async def save_submission(self, record: SubmissionRecord) -> int:
        return await insert_submission(record)
