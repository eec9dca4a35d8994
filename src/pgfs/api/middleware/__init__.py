"""pgfs API middleware package."""

from pgfs.api.middleware.db_tx import DBTransactionMiddleware
from pgfs.api.middleware.request_id import RequestIdMiddleware

__all__ = ["DBTransactionMiddleware", "RequestIdMiddleware"]
