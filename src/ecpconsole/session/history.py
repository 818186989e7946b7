"""
Command line history for a console session, navigated with the arrow, page and tab keys.
"""
from enum import Enum


class Key(Enum):
    """ the input keys a console session responds to. """
    ENTER = 'Enter'
    UP = 'Up'
    DOWN = 'Down'
    PAGE_UP = 'PageUp'
    PAGE_DOWN = 'PageDown'
    TAB = 'Tab'
    SHIFT_TAB = 'Shift-Tab'
    BREAK = 'Break'
    ESCAPE = 'Escape'
    CLEAR_SCREEN = 'ClearScreen'


def _blank(s):
    return not s or not s.strip()


class CommandHistory:
    """
    The lines entered in a session, and a cursor used to browse them.

    The cursor is the index of the entry last shown by Up/Down, or len(entries) when the user
    is not browsing. Submitting a line shown from history unchanged keeps the cursor pinned
    on it, so a sequence of earlier commands can be replayed with Up/Enter, Down/Enter.

    Each key method returns the text to place on the input line, or None when the input line
    should be left as it is.

    >>> history = CommandHistory()
    >>> for line in ('a', 'b', 'c'):
    ...     history.enter(line)
    >>> history.up(), history.up(), history.up(), history.up()
    ('c', 'b', 'a', None)
    """

    def __init__(self):
        self.entries = []
        self.cursor = 0
        # the text last shown by up/down, to detect an unchanged resubmit
        self._shown = None
        # set after an unchanged resubmit, so the next up shows the pinned entry again
        self._redo = False
        self._reset_completion()

    def __len__(self):
        return len(self.entries)

    def _reset_completion(self):
        self._tab_index = None
        self._tab_prefix = ''
        self._tab_shown = ''

    def keydown(self, key: Key, line=''):
        handler = {
            Key.ENTER: self.enter,
            Key.UP: self.up,
            Key.DOWN: self.down,
            Key.PAGE_UP: self.page_up,
            Key.PAGE_DOWN: self.page_down,
            Key.TAB: self.tab,
            Key.SHIFT_TAB: self.shift_tab,
        }.get(key)
        return handler(line) if handler else None

    def enter(self, line):
        if not _blank(line):
            if self.cursor == len(self.entries):
                self._redo = False
                self.cursor += 1
            elif line == self._shown:
                self._redo = True
            else:
                self._redo = False
                self.cursor = len(self.entries) + 1
            self.entries.append(line)
        self._reset_completion()
        return None

    def up(self, line=''):
        if not self.entries:
            return None
        if self._redo:
            self._redo = False
        elif self.cursor > 0:
            self.cursor -= 1
        else:
            return None
        return self._show(self.cursor)

    def down(self, line=''):
        self._redo = False
        if self.cursor >= len(self.entries) - 1:
            return None
        self.cursor += 1
        return self._show(self.cursor)

    def page_up(self, line=''):
        if not self.entries:
            return None
        self._redo = False
        self.cursor = 0
        return self._show(self.cursor)

    def page_down(self, line=''):
        if not self.entries:
            return None
        self._redo = False
        self.cursor = len(self.entries) - 1
        return self._show(self.cursor)

    def _show(self, index):
        self._shown = self.entries[index]
        return self._shown

    def tab(self, line):
        """ completes line from the next older entry starting with the same text, wrapping to the newest. """
        return self._complete(line, -1)

    def shift_tab(self, line):
        """ as tab(), searching towards the newer entries. """
        return self._complete(line, 1)

    def _complete(self, line, step):
        if _blank(line) or not self.entries:
            return None
        if self._tab_index is None:
            self._tab_index = self.cursor
            self._tab_prefix = line
        elif line != self._tab_shown:
            # edited since the last completion
            self._tab_prefix = line
        count = len(self.entries)
        for _ in range(count):
            index = self._tab_index + step
            if index < 0:
                index = count - 1
            elif index >= count:
                index = 0
            self._tab_index = index
            candidate = self.entries[self._tab_index]
            if candidate.startswith(self._tab_prefix):
                self._tab_shown = candidate
                return candidate
        return None
