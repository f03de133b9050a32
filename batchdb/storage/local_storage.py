import copy
import json
import logging

from .database_service import DatabaseService
from ._synchronized import Lock
from ._helpers import validate_only_sort_key
from ..conditions import DynamoCondition
from ..requests import BatchGetResult, BatchWriteResult, DeleteRequest, PutRequest
from ..updates import apply_updates

logger = logging.getLogger(__name__)

lock = Lock()

class LocalService(DatabaseService):
    """In-memory implementation of the database, for tests and local development.

    Tables must be declared with `create_table()` so we know which fields make up
    their keys.

    If `max_batch_size` is given, batch operations process at most that many
    requests (or keys) per call and report the rest as unprocessed, the way
    DynamoDB does when it is throttling or when a batch is too large.
    """

    def __init__(self, filename=None, max_batch_size=None):
        # In-memory structure:
        #
        # { table_name -> [ {...record...}, {...record...} ] }
        #
        # Records are kept in insertion order, which is also the scan order.
        self.tables = {}
        self.key_schema = {}
        self.filename = filename
        self.max_batch_size = max_batch_size

        if filename:
            try:
                with open(filename, "r", encoding="utf-8") as f:
                    self.tables = json.load(f, object_hook=CustomEncoder.decode_object)
            except IOError:
                pass
            except json.decoder.JSONDecodeError as e:
                logger.warning(
                    f"Error loading {filename}. The next write operation \
                        will overwrite the database with a clean copy: {e}"
                )

    def create_table(self, table_name, partition_key, sort_key=None):
        self.key_schema[table_name] = [partition_key] + ([sort_key] if sort_key else [])
        self.tables.setdefault(table_name, [])

    # NOTE: on purpose not @synchronized here
    def get_item(self, table_name, key):
        self._validate_key(table_name, key)
        records = self.tables.get(table_name, [])
        index = self._find_index(records, key)
        return copy.deepcopy(records[index]) if index is not None else None

    @lock.synchronized
    def put_item(self, table_name, item):
        key = self._extract_key(table_name, item)
        records = self.tables.setdefault(table_name, [])
        index = self._find_index(records, key)
        if index is None:
            records.append(copy.deepcopy(item))
        else:
            records[index] = copy.deepcopy(item)
        self._flush()

    @lock.synchronized
    def update_item(self, table_name, key, updates):
        self._validate_key(table_name, key)
        records = self.tables.setdefault(table_name, [])
        index = self._find_index(records, key)
        if index is None:
            records.append(copy.deepcopy(key))
            index = len(records) - 1

        apply_updates(records[index], updates)
        self._flush()
        return copy.deepcopy(records[index])

    @lock.synchronized
    def delete_item(self, table_name, key, condition=None):
        if condition:
            raise NotImplementedError(f"LocalService does not evaluate delete conditions: {condition}")
        self._validate_key(table_name, key)
        records = self.tables.get(table_name, [])
        index = self._find_index(records, key)
        ret = None
        if index is not None:
            ret = records.pop(index)
            self._flush()
        return ret

    @lock.synchronized
    def query(self, table_name, key, index_name=None, reverse=False, limit=None, pagination_token=None):
        eq_conditions, special_conditions = DynamoCondition.partition(key)
        validate_only_sort_key(eq_conditions, special_conditions)

        records = self.tables.get(table_name, [])
        filtered = [r for r in records if self._query_matches(r, eq_conditions, special_conditions)]

        sort_key = self._sort_key_for(table_name, index_name, special_conditions)
        if sort_key:
            filtered.sort(key=lambda r: r.get(sort_key))
        if reverse:
            filtered.reverse()

        return self._page(table_name, filtered, limit, pagination_token)

    @lock.synchronized
    def scan(self, table_name, limit=None, pagination_token=None):
        return self._page(table_name, self.tables.get(table_name, []), limit, pagination_token)

    @lock.synchronized
    def batch_write(self, requests_by_table):
        # Like DynamoDB, reject the whole batch before applying any of it
        for table_name, requests in requests_by_table.items():
            for request in requests:
                if isinstance(request, PutRequest):
                    self._extract_key(table_name, request.item)
                elif isinstance(request, DeleteRequest):
                    self._validate_key(table_name, request.key)
                else:
                    raise ValueError(f"Not a PutRequest or DeleteRequest: {request}")

        budget = self.max_batch_size
        unprocessed = {}
        for table_name, requests in requests_by_table.items():
            for request in requests:
                if budget is not None and budget <= 0:
                    unprocessed.setdefault(table_name, []).append(request)
                    continue
                if isinstance(request, PutRequest):
                    self.put_item(table_name, request.item)
                else:
                    self.delete_item(table_name, request.key)
                if budget is not None:
                    budget -= 1
        return BatchWriteResult(unprocessed=unprocessed)

    @lock.synchronized
    def batch_get(self, keys_by_table):
        budget = self.max_batch_size
        result = BatchGetResult()
        for table_name, keys in keys_by_table.items():
            if not keys:
                continue
            found = result.items.setdefault(table_name, [])
            for key in keys:
                if budget is not None and budget <= 0:
                    result.unprocessed_keys.setdefault(table_name, []).append(key)
                    continue
                record = self.get_item(table_name, key)
                if record is not None:
                    found.append(record)
                if budget is not None:
                    budget -= 1
        return result

    def list_tables(self, limit=10):
        return sorted(set(self.tables) | set(self.key_schema))[:limit]

    def _page(self, table_name, records, limit, pagination_token):
        start = 0
        if pagination_token:
            # Resume right after the record the token points at
            positions = [i for i, r in enumerate(records) if self._eq_matches(r, pagination_token)]
            start = positions[0] + 1 if positions else len(records)

        items = records[start:]
        continuation_key = None
        if limit and limit < len(items):
            items = items[:limit]
            continuation_key = self._extract_key(table_name, items[-1])

        return copy.deepcopy(items), continuation_key

    def _key_names(self, table_name):
        try:
            return self.key_schema[table_name]
        except KeyError:
            raise RuntimeError(f"Unknown table {table_name}, declare it with create_table() first") from None

    def _sort_key_for(self, table_name, index_name, special_conditions):
        if special_conditions:
            return next(iter(special_conditions))
        key_names = self._key_names(table_name)
        if index_name is None and len(key_names) > 1:
            return key_names[1]
        return None

    def _extract_key(self, table_name, data):
        missing = [k for k in self._key_names(table_name) if k not in data]
        if missing:
            raise RuntimeError(f"Key field(s) {missing} missing from data: {data}")
        return {k: data[k] for k in self._key_names(table_name)}

    def _validate_key(self, table_name, key):
        if set(key.keys()) != set(self._key_names(table_name)):
            raise RuntimeError(f"key fields incorrect: {key} != {self._key_names(table_name)}")

    def _find_index(self, records, key):
        for i, v in enumerate(records):
            if self._eq_matches(v, key):
                return i
        return None

    def _eq_matches(self, record, key):
        return all(record.get(k) == v for k, v in key.items())

    def _query_matches(self, record, eq, conds):
        return all(record.get(k) == v for k, v in eq.items()) and all(
            cond.matches(record.get(k)) for k, cond in conds.items()
        )

    def _flush(self):
        if self.filename:
            try:
                with open(self.filename, "w", encoding="utf-8") as f:
                    json.dump(self.tables, f, indent=2, cls=CustomEncoder)
            except IOError:
                logger.exception(f"Could not write {self.filename}")


class CustomEncoder(json.JSONEncoder):
    """An encoder that serializes non-standard types like sets."""

    def default(self, obj):
        if isinstance(obj, set):
            return {"$type": "set", "elements": list(obj)}
        return json.JSONEncoder.default(self, obj)

    @staticmethod
    def decode_object(obj):
        """The decoding for the encoding above."""
        if obj.get("$type") == "set":
            return set(obj["elements"])
        return obj
