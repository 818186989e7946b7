from io import IOBase

from ecpconsole.conduit.base import Conduit


class StreamConduit(Conduit):
    """ provides the conduit streams from specific read/write file-like types (which may be the same value) """

    def __init__(self, read, write=None):
        self._read = read
        self._write = write if write is not None else read
        self._closed = False

    def close(self):
        self._closed = True
        self._write.close()
        self._read.close()

    @property
    def target(self):
        return self._read

    @property
    def open(self):
        return not self._closed

    @property
    def input(self) -> IOBase:
        return self._read

    @property
    def output(self) -> IOBase:
        return self._write
