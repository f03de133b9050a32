from abc import ABCMeta

class DatabaseService(metaclass=ABCMeta):
    """Contract for the database this library talks to.

    All table names are logical names; implementations apply any prefix.
    Every method is a single round trip, and errors are raised as-is.
    """

    def get_item(self, table_name, key):
        """Return the record with the given key, or None."""
        ...

    def put_item(self, table_name, item):
        """Store a complete record.

        Does not need to return anything.
        """
        ...

    def update_item(self, table_name, key, updates):
        """Update the given record, identified by a key, with updates.

        `updates` is a dict as understood by `batchdb.updates.generate_update`.
        Must return the updated state of the record.
        """
        ...

    def delete_item(self, table_name, key, condition=None):
        """Delete a record, returning the old record if there was one.

        `condition` is an optional dict of extra DeleteItem parameters
        (ConditionExpression and friends).
        """
        ...

    # Returns (items, continuation_key)
    def query(self, table_name, key, index_name=None, reverse=False, limit=None, pagination_token=None):
        ...

    # Returns (items, continuation_key)
    def scan(self, table_name, limit=None, pagination_token=None):
        ...

    def batch_write(self, requests_by_table):
        """Submit {table_name: [WriteRequest]} once. Returns a BatchWriteResult."""
        ...

    def batch_get(self, keys_by_table):
        """Submit {table_name: [key]} once. Returns a BatchGetResult."""
        ...

    def list_tables(self, limit=10):
        ...
