from .storage.database_service import DatabaseService
from .result_page import ResultPage
from .batch import BatchGetDriver, BatchWriteDriver
from .requests import DeleteRequest, PutRequest
from . import querylog


class Table:
    """Dynamo table access

    Every operation is a single round trip to the database, except for the
    batch operations, which keep resubmitting until the whole batch is done.

    Parameters:
        - service: the DatabaseService to talk to.
        - table_name: the logical table name (without environment prefix).
        - partition_key: the partition key for the table.
        - sort_key: a field that is the sort key for the table.
        - config: a DbConfig; only its batch retry settings are used here.
    """

    def __init__(self, service: DatabaseService, table_name, partition_key, sort_key=None, config=None):
        self.service = service
        self.table_name = table_name
        self.partition_key = partition_key
        self.sort_key = sort_key
        if config is not None:
            self.write_driver = BatchWriteDriver.from_config(service, config)
            self.get_driver = BatchGetDriver.from_config(service, config)
        else:
            self.write_driver = BatchWriteDriver(service)
            self.get_driver = BatchGetDriver(service)

    @querylog.timed_as("db_get")
    def get(self, key):
        """Gets an item by its full primary key, or None if it doesn't exist."""
        querylog.log_counter(f"db_get:{self.table_name}")
        self._validate_key(key)
        return self.service.get_item(self.table_name, key)

    @querylog.timed_as("db_create")
    def create(self, data):
        """Put a single complete record into the database."""
        self._extract_key(data)

        querylog.log_counter(f"db_create:{self.table_name}")
        self.service.put_item(self.table_name, data)
        return data

    def put(self, data):
        """An alias for 'create', if calling create reads uncomfortably."""
        return self.create(data)

    @querylog.timed_as("db_update")
    def update(self, key, updates):
        """Update select fields of a given record.

        The values of updates can be plain data, None to remove a field, or an
        instance of one of the subclasses of DynamoUpdate which represent
        updates that aren't representable as plain values.

        Returns the record as it is after the update.
        """
        querylog.log_counter(f"db_update:{self.table_name}")
        self._validate_key(key)

        return self.service.update_item(self.table_name, key, updates)

    @querylog.timed_as("db_del")
    def delete(self, key, condition=None):
        """Delete an item by primary key.

        Returns the deleted item, if there was one.
        """
        querylog.log_counter("db_del:" + self.table_name)
        self._validate_key(key)

        return self.service.delete_item(self.table_name, key, condition)

    @querylog.timed_as("db_query")
    def query(self, key, index_name=None, reverse=False, limit=None, pagination_token=None):
        """Return one page of items matching the key.

        The key holds equality values for the partition key (of the table or of
        `index_name`) and optionally a DynamoCondition on the sort key.

        Reads up to 1MB of data from the database, or a maximum of `limit`
        records, whichever one is hit first. This does not fetch further pages:
        pass the returned `continuation_key` back as `pagination_token` for that.
        """
        querylog.log_counter(f"db_query:{self.table_name}")
        if not key:
            raise ValueError("Query needs at least a partition key value")

        items, continuation_key = self.service.query(
            self.table_name,
            key,
            index_name=index_name,
            reverse=reverse,
            limit=limit,
            pagination_token=pagination_token,
        )
        querylog.log_counter("db_query_items", len(items))
        return ResultPage(items, continuation_key)

    @querylog.timed_as("db_scan")
    def scan(self, limit=None, pagination_token=None):
        """Return one page of the table contents."""
        querylog.log_counter("db_scan:" + self.table_name)
        items, continuation_key = self.service.scan(
            self.table_name, limit=limit, pagination_token=pagination_token
        )
        return ResultPage(items, continuation_key)

    def batch_get(self, keys):
        """Return the items for a list of primary keys.

        Keys without a matching item are skipped, and the result is not
        guaranteed to be in the same order as `keys`. Every key must be different.
        """
        querylog.log_counter(f"db_batch_get:{self.table_name}")
        keys = list(keys)
        for key in keys:
            self._validate_key(key)
        reject_duplicate_keys(keys)
        return self.get_driver.run(self.table_name, keys)

    def batch_write(self, requests):
        """Apply a list of PutRequests and DeleteRequests to this table.

        Every request must be for a different key.
        """
        querylog.log_counter(f"db_batch_write:{self.table_name}")
        requests = list(requests)
        keys = []
        for request in requests:
            if isinstance(request, PutRequest):
                keys.append(self._extract_key(request.item))
            elif isinstance(request, DeleteRequest):
                self._validate_key(request.key)
                keys.append(request.key)
            else:
                raise ValueError(f"Not a PutRequest or DeleteRequest: {request}")
        reject_duplicate_keys(keys)
        return self.write_driver.run({self.table_name: requests})

    def batch_put(self, items):
        return self.batch_write([PutRequest(item) for item in items])

    def batch_delete(self, keys):
        return self.batch_write([DeleteRequest(key) for key in keys])

    def _extract_key(self, data):
        """
        Extract the key data out of plain data.
        """
        if self.partition_key not in data:
            raise ValueError(f"Partition key '{self.partition_key}' missing from data: {data}")
        if self.sort_key and self.sort_key not in data:
            raise ValueError(f"Sort key '{self.sort_key}' missing from data: {data}")

        return {k: data[k] for k in self._key_names()}

    def _key_names(self):
        return set(x for x in [self.partition_key, self.sort_key] if x is not None)

    def _validate_key(self, key):
        if key.keys() != self._key_names():
            raise RuntimeError(f"key fields incorrect: {key} != {self._key_names()}")
        if any(v is None or v == "" for v in key.values()):
            raise RuntimeError(f"key fields cannot be empty: {key}")


def reject_duplicate_keys(keys):
    """DynamoDB refuses a batch that mentions the same key twice, so we refuse it first."""
    seen = set()
    for key in keys:
        frozen = frozenset(key.items())
        if frozen in seen:
            raise ValueError(f"Duplicate key in batch: {key}")
        seen.add(frozen)
