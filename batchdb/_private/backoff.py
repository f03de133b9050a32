import random
import time

from .. import querylog

class ExponentialBackoff:
    """Sleep between retry rounds, doubling the maximum delay every time.

    The actual delay is drawn uniformly from [0, current], and the current
    delay never grows beyond `cap`.
    """

    def __init__(self, base=0.05, cap=5.0, sleep=time.sleep):
        self.time = base
        self.cap = cap
        self._sleep = sleep

    @querylog.timed_as('db:sleep')
    def sleep(self):
        self._sleep(random.uniform(0, self.time))
        self.time = min(self.time * 2, self.cap)

    def sleep_when(self, condition):
        if condition:
            self.sleep()
