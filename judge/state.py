from typing import Optional

from judge.db import PostgresRepository

# Global runtime state initialized in judge.lifespan
repository: Optional[PostgresRepository] = None
