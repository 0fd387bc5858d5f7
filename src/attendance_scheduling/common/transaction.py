from __future__ import annotations

import logging
from functools import wraps

from ..core.constants import TRANSACTION_ATTEMPTS
from ..core.exceptions import TransactionConflict

logger = logging.getLogger(__name__)


def transactional(method):
    """Run a service method inside ``self._atomic()`` as one unit of work.

    When the store aborts the transaction as a deadlock victim, the whole
    method runs again so its checks see what the winning transaction
    committed. Nested calls join the caller's transaction; only the
    outermost scope retries.
    """

    @wraps(method)
    def wrapper(self, *args, **kwargs):
        attempt = 1
        while True:
            try:
                with self._atomic():
                    return method(self, *args, **kwargs)
            except TransactionConflict:
                if attempt >= TRANSACTION_ATTEMPTS:
                    raise
                logger.warning("%s aborted by a deadlock, retrying (attempt %s)", method.__qualname__, attempt + 1)
                attempt += 1

    return wrapper
