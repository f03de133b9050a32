import functools
import threading

class Lock:
    """A reentrant lock usable as a method decorator.

    Reentrant, because the batch operations of the in-memory service are
    built out of its single-item operations.
    """

    def __init__(self):
        self.lock = threading.RLock()

    def synchronized(self, fn):
        @functools.wraps(fn)
        def _wrapper(*args, **kwargs):
            with self.lock:
                return fn(*args, **kwargs)

        return _wrapper
