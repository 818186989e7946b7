import time

from ecpconsole.support.mixins import CommonEqualityMixin


class Period(CommonEqualityMixin):
    """
    Tracks when a periodic action is next due.
    The first call is always due. After an action is due, the period restarts
    from the time of the call, without accumulating any overshoot.
    """

    def __init__(self, period, last_due=None):
        """
        :param period: The period in seconds.
        :param last_due: the time the action was last due, or None if never.
        """
        self.period = period
        self.last_due = last_due

    def __call__(self, current_time=None, dry_run=False):
        """ returns the length of time until the action is due. A result <= 0 means it is due now.
            :param dry_run: when True, the period is not restarted
        """
        if current_time is None:
            current_time = time.monotonic()
        result = self.remaining(current_time)
        if not dry_run and result <= 0:
            self.last_due = current_time
        return result

    def remaining(self, current_time):
        """
        >>> Period(10).remaining(5)
        0
        >>> Period(10, last_due=2).remaining(5)
        7
        """
        return 0 if self.last_due is None else self.period - (current_time - self.last_due)

    def reset(self):
        self.last_due = None
