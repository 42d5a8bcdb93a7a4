import logging
from typing import Any

from sqlalchemy.orm import Session


class BaseService:
    """Shared plumbing for domain services: the request session and a per-class logger."""

    def __init__(self, db: Session):
        self.db = db
        self._logger = logging.getLogger(f"{self.__module__}.{self.__class__.__name__}")

    def log_info(self, message: str, **extra: Any):
        self._logger.info(message, extra=extra or None)

    def log_warning(self, message: str, **extra: Any):
        self._logger.warning(message, extra=extra or None)

    def commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
