"""
pgtk - Throwaway PostgreSQL servers for development and tests
"""

__version__ = "0.1.0"

from .core import PgsqlTask
from .errors import PgtkError
from .models import InstanceConfig, PublishedCredentials, RunningInstance
from .pool import Pool

__all__ = [
    "InstanceConfig",
    "PgsqlTask",
    "PgtkError",
    "Pool",
    "PublishedCredentials",
    "RunningInstance",
]
