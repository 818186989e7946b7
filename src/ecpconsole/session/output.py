"""
Accounting for the output shown in a console session.
"""


class OutputBuffer:
    """
    The output of a session as a list of units. A unit is a chunk of text that ends with a
    newline, or the last chunk, which stays open while the console has not finished the line.

    The newlines retained are counted. When auto_scroll is on and the count exceeds max_lines,
    the oldest units are evicted. With auto_scroll off nothing is evicted, since the user may be
    reading the older output.
    """

    def __init__(self, max_lines=5000, auto_scroll=True):
        self.max_lines = max_lines
        self.auto_scroll = auto_scroll
        self.units = []
        self.line_count = 0
        self._open = False

    def __len__(self):
        return len(self.units)

    @property
    def text(self):
        return ''.join(self.units)

    def append(self, chunk):
        """
        Adds a chunk of output.
        :return: a tuple (new_unit, evicted): whether the chunk started a new unit rather than
            extending the open one, and the list of units evicted to stay within budget.
        """
        if not chunk:
            return False, []
        new_unit = not (self._open and self.units)
        if new_unit:
            self.units.append(chunk)
        else:
            self.units[-1] += chunk
        self._open = not chunk.endswith('\n')
        self.line_count += chunk.count('\n')
        return new_unit, self.prune()

    def prune(self):
        """ evicts the oldest units while over the line budget. The newest unit is always kept.
        :return: the evicted units
        """
        evicted = []
        if not self.auto_scroll:
            return evicted
        while self.line_count > self.max_lines and len(self.units) > 1:
            unit = self.units.pop(0)
            self.line_count -= unit.count('\n')
            evicted.append(unit)
        return evicted

    def clear(self):
        del self.units[:]
        self.line_count = 0
        self._open = False
