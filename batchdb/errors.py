class RetriesExhaustedError(Exception):
    """A batch operation did not converge within the allowed number of rounds.

    `unprocessed` holds whatever the service still reported as unprocessed
    after the last round. For batch reads, `items` holds the records that
    were retrieved before giving up.
    """

    def __init__(self, operation, attempts, unprocessed, items=None):
        self.operation = operation
        self.attempts = attempts
        self.unprocessed = unprocessed
        self.items = items
        super().__init__(
            f"{operation} still has {count_requests(unprocessed)} unprocessed request(s) after {attempts} attempt(s)")


def count_requests(by_table):
    return sum(len(v) for v in by_table.values())
