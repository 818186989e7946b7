import codecs
from collections import deque


class PacketQueue:
    """
    The chunks of bytes received from a console, waiting to be displayed.

    Chunks are decoded as UTF-8 in the order they were queued. A multi-byte character split
    across two chunks is carried over and returned whole with the second chunk.

    >>> queue = PacketQueue()
    >>> queue.enqueue('é'.encode('utf-8')[:1])
    >>> queue.enqueue('é'.encode('utf-8')[1:])
    >>> queue.dequeue_decoded(), queue.dequeue_decoded()
    ('', 'é')
    """

    def __init__(self, encoding='utf-8', errors='replace'):
        self._chunks = deque()
        self._decoder = codecs.getincrementaldecoder(encoding)(errors)

    def __len__(self):
        return len(self._chunks)

    def enqueue(self, chunk: bytes):
        self._chunks.append(bytes(chunk))

    def dequeue_decoded(self) -> str:
        """ removes the oldest chunk and returns its text. Raises IndexError when the queue is empty. """
        return self._decoder.decode(self._chunks.popleft())

    def is_empty(self):
        return not self._chunks

    def clear(self):
        """ drops any queued chunks, and any partial character carried over. """
        self._chunks.clear()
        self._decoder.reset()
