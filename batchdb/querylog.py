"""Hooks for reporting operation timings and counters.

The library does not depend on any metrics system. An application installs
receivers, which are plain callables:

    querylog.set_timer_receiver(lambda key, ms: statsd.timing(key, ms))
    querylog.set_counter_receiver(lambda key, n: statsd.incr(key, n))
"""
import time
import functools

TIMER_RECEIVER = None
COUNTER_RECEIVER = None


def set_timer_receiver(timer_receiver):
    global TIMER_RECEIVER
    TIMER_RECEIVER = timer_receiver


def set_counter_receiver(counter_receiver):
    global COUNTER_RECEIVER
    COUNTER_RECEIVER = counter_receiver


def timed_as(key):
    def decorator(fn):
        @functools.wraps(fn)
        def decorated(*args, **kwargs):
            start = time.monotonic()
            try:
                return fn(*args, **kwargs)
            finally:
                if TIMER_RECEIVER:
                    TIMER_RECEIVER(key, int((time.monotonic() - start) * 1000))

        return decorated
    return decorator


def log_counter(key, increment=1):
    if COUNTER_RECEIVER and increment:
        COUNTER_RECEIVER(key, increment)
