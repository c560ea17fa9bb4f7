from judge.db.core import close_pool, init_pool
from judge.db.submissions import PostgresRepository, fetch_testcases, insert_submission

__all__ = [
    "PostgresRepository",
    "close_pool",
    "fetch_testcases",
    "init_pool",
    "insert_submission",
]
