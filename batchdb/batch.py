"""Drive DynamoDB batch operations to completion.

BatchWriteItem and BatchGetItem may process only part of a batch, and report
the rest back as UnprocessedItems/UnprocessedKeys. The drivers here resubmit
exactly that remainder, backing off between rounds, until nothing is left.

Any error from the service aborts the operation immediately. Writes applied
in earlier rounds are not rolled back.
"""
import logging

from . import querylog
from ._private.backoff import ExponentialBackoff
from .errors import RetriesExhaustedError, count_requests

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10


class _BatchDriver:
    def __init__(self, service, max_attempts=DEFAULT_MAX_ATTEMPTS, backoff_factory=ExponentialBackoff):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got: {max_attempts}")
        self.service = service
        self.max_attempts = max_attempts
        self.backoff_factory = backoff_factory

    @classmethod
    def from_config(cls, service, config):
        return cls(
            service,
            max_attempts=config.max_batch_attempts,
            backoff_factory=lambda: ExponentialBackoff(base=config.backoff_base, cap=config.backoff_cap),
        )


class BatchWriteDriver(_BatchDriver):
    @querylog.timed_as("db_batch_write")
    def run(self, requests_by_table):
        """Apply {table_name: [PutRequest | DeleteRequest]}, returning True once everything is processed."""
        pending = {t: list(r) for t, r in requests_by_table.items() if r}
        backoff = self.backoff_factory()
        attempts = 0

        while True:
            backoff.sleep_when(attempts > 0)
            attempts += 1
            logger.debug("batch_write round %d: %d request(s)", attempts, count_requests(pending))
            querylog.log_counter("db_batch_write_round")

            try:
                result = self.service.batch_write(pending)
            except Exception:
                logger.exception("batch_write failed in round %d", attempts)
                raise

            pending = {t: list(r) for t, r in result.unprocessed.items() if r}
            if not pending:
                return True

            logger.warning("batch_write has %d unprocessed request(s) after round %d",
                           count_requests(pending), attempts)
            if attempts >= self.max_attempts:
                raise RetriesExhaustedError("batch_write", attempts, pending)


class BatchGetDriver(_BatchDriver):
    @querylog.timed_as("db_batch_get")
    def run(self, table_name, keys):
        """Fetch the records for `keys` from one table.

        Keys without a record are skipped. Records are returned in the order the
        service handed them out, which is not necessarily the order of `keys`.
        """
        pending = list(keys)
        results = []
        backoff = self.backoff_factory()
        attempts = 0

        while True:
            backoff.sleep_when(attempts > 0)
            attempts += 1
            logger.debug("batch_get round %d on %s: %d key(s)", attempts, table_name, len(pending))
            querylog.log_counter("db_batch_get_round")

            try:
                result = self.service.batch_get({table_name: pending})
            except Exception:
                logger.exception("batch_get on %s failed in round %d", table_name, attempts)
                raise

            found = result.items.get(table_name, [])
            results.extend(found)
            querylog.log_counter("db_batch_get_items", len(found))

            pending = list(result.unprocessed_keys.get(table_name, []))
            if not pending:
                return results

            logger.warning("batch_get on %s has %d unprocessed key(s) after round %d",
                           table_name, len(pending), attempts)
            if attempts >= self.max_attempts:
                raise RetriesExhaustedError("batch_get", attempts, {table_name: pending}, items=results)
