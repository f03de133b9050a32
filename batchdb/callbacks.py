"""Callback-style adapters on top of the regular (return or raise) API.

For code that wants results delivered as

    callback(error, value)                     # Callback
    callback(error, items, continuation_key)   # CallbackWithKey, for query/scan

The callback is called exactly once. On success `error` is None; on failure
the other arguments are None. Exceptions raised by the callback itself are
not caught.
"""
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Callback = Callable[[Optional[Exception], Any], None]
CallbackWithKey = Callable[[Optional[Exception], Optional[list], Optional[dict]], None]


def with_callback(fn, callback: Callback, *args, **kwargs):
    try:
        value = fn(*args, **kwargs)
    except Exception as e:
        logger.exception(f"{getattr(fn, '__name__', fn)} failed")
        callback(e, None)
        return
    callback(None, value)


def with_key_callback(fn, callback: CallbackWithKey, *args, **kwargs):
    """Like with_callback, for functions returning a ResultPage."""
    try:
        page = fn(*args, **kwargs)
    except Exception as e:
        logger.exception(f"{getattr(fn, '__name__', fn)} failed")
        callback(e, None, None)
        return
    callback(None, page.records, page.continuation_key)


def swap_output_id(callback: Callback, original_id, new_id) -> Callback:
    """Wrap a callback so returned records also carry `original_id` under `new_id`.

    Works on a single record and on a list of records. Empty values are
    passed through untouched.
    """
    def _wrapper(error, value=None):
        callback(error, remap(value, original_id, new_id) if value else value)

    return _wrapper


def remap(value, original_id, new_id):
    if isinstance(value, list):
        return [remap_item(item, original_id, new_id) for item in value]
    return remap_item(value, original_id, new_id)


def remap_item(item, original_id, new_id):
    return {**item, new_id: item.get(original_id)}
