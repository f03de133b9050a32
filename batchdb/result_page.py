from dataclasses import dataclass
from typing import List, Optional

@dataclass
class ResultPage:
    """A page of results, as returned by query() and scan().

    If `continuation_key` is not `None`, the database has more data. Pass it
    back as `pagination_token` to get the next page; nothing in this library
    fetches further pages on your behalf.

    Implements the iterator protocol, so can be used in a `for` loop.
    """

    records: List[dict]
    continuation_key: Optional[dict]

    @property
    def has_next_page(self):
        return bool(self.continuation_key)

    def __iter__(self):
        return iter(self.records)

    def __getitem__(self, i):
        return self.records[i]

    def __len__(self):
        return len(self.records)

    def __bool__(self):
        return bool(self.records)
