"""
Mirrors the output of a console session to a file.
"""
import logging
import os
from datetime import datetime

logger = logging.getLogger(__name__)

LOG_DIR = os.path.join('~', 'Documents', 'ECPConsoleLogs')


def default_log_path(now: datetime=None, directory=LOG_DIR):
    """
    >>> default_log_path(datetime(2020, 3, 4, 5, 6, 7), '/logs')
    '/logs/20200304-050607.log'
    """
    now = now or datetime.now()
    return os.path.join(os.path.expanduser(directory), now.strftime('%Y%m%d-%H%M%S') + '.log')


class SessionLog:
    """
    An append-mode UTF-8 log of session output. Logging can be paused and resumed while the file is open.
    A failed write is logged and closes the file.
    """

    def __init__(self, log=logger):
        self.file = None
        self.path = None
        self.logging = False
        self.logger = log

    def open(self, path):
        """ starts logging to path, closing any file already open. """
        self.close()
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self.file = open(path, 'a', encoding='utf-8', newline='')
        self.path = path
        self.logging = True
        self.write('Logging started' + os.linesep)

    @property
    def is_open(self):
        return self.file is not None

    @property
    def can_pause(self):
        return self.is_open and self.logging

    @property
    def can_resume(self):
        return self.is_open and not self.logging

    def pause(self):
        self.logging = False

    def resume(self):
        if self.file is not None:
            self.logging = True

    def write(self, text):
        if not (self.file and self.logging):
            return
        try:
            self.file.write(text)
            self.file.flush()
        except OSError as e:
            self.logger.warning("log write to %s failed: %s", self.path, e)
            self.close()

    def close(self):
        file, self.file = self.file, None
        self.logging = False
        if file is not None:
            try:
                file.close()
            except OSError as e:
                self.logger.warning("unable to close log %s: %s", self.path, e)
