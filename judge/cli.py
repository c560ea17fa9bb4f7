"""
Judge a local source file against a JSON list of testcases.

The testcase file holds a list of objects with ``id``, ``input``, ``output``
and optionally ``weight`` (default 1) and ``is_sample`` (default false).

Usage:
    python -m judge.cli solution.py --tests tests.json [--language python] [--save]

Arguments:
    --tests PATH       JSON testcase file
    --language KEY     c, cpp or python (default: detected from the file extension)
    --problem-id N     Problem id recorded with the submission (default: 1)
    --user-id N        User id recorded with the submission (default: 1)
    --save             Persist the submission to PostgreSQL

Exit status is 0 when the submission is accepted, 1 when it is rejected and
2 when it could not be judged at all.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from judge import db
from judge.config import get_settings
from judge.errors import JudgeError
from judge.languages import detect_language
from judge.models import JudgeRequest, JudgeResult, Testcase
from judge.sandbox import register_cleanup
from judge.verdict import judge

logger = logging.getLogger(__name__)

_testcase_list = TypeAdapter(list[Testcase])


def load_testcases(path: Path) -> list[Testcase]:
    return _testcase_list.validate_json(path.read_bytes())


async def run(
    source_path: Path,
    tests_path: Path,
    language: str | None,
    problem_id: int,
    user_id: int,
    save: bool,
) -> JudgeResult:
    request = JudgeRequest(
        language=language or detect_language(source_path.name),
        source_code=source_path.read_text(encoding="utf-8"),
        problem_id=problem_id,
        user_id=user_id,
    )
    testcases = load_testcases(tests_path)

    if not save:
        return await judge(request, testcases)

    await db.init_pool()
    try:
        return await judge(request, testcases, store=db.PostgresRepository())
    finally:
        await db.close_pool()


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Judge a source file against local testcases.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("source", type=Path, help="Source file to judge")
    parser.add_argument("--tests", type=Path, required=True, help="JSON testcase file")
    parser.add_argument("--language", default=None, help="Language key (default: detect from extension)")
    parser.add_argument("--problem-id", type=int, default=1)
    parser.add_argument("--user-id", type=int, default=1)
    parser.add_argument("--save", action="store_true", help="Persist the submission to PostgreSQL")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=get_settings().log.level.upper(),
        format="[%(asctime)s] [%(levelname)s] %(message)s",
        stream=sys.stderr,
    )
    register_cleanup()

    try:
        result = asyncio.run(run(
            args.source, args.tests, args.language, args.problem_id, args.user_id, args.save,
        ))
    except (OSError, ValidationError, JudgeError) as e:
        logger.error("%s", e)
        return 2

    print(json.dumps(result.model_dump(mode="json", exclude_none=True), indent=2))
    return 0 if result.status == "accepted" else 1


if __name__ == "__main__":
    sys.exit(main())
