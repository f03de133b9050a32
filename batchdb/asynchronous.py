"""Awaitable versions of the batch operations.

The batch drivers block while they talk to the database and back off, so
these run them on a worker thread.
"""
import asyncio


async def batch_write_async(table, requests):
    """Apply PutRequests/DeleteRequests to `table`. Raises whatever the batch raises."""
    await asyncio.to_thread(table.batch_write, list(requests))


async def batch_get_async(table, keys):
    """Return the items for `keys` in `table`."""
    return await asyncio.to_thread(table.batch_get, list(keys))
