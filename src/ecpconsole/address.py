"""
Conversion between dotted-decimal IPv4 addresses and unsigned 32-bit integers.
The integer form is used to sort devices and for subnet arithmetic.
"""
import re

_dotted = re.compile(r'(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.(\d{1,3})', re.ASCII)

MAX_INT32 = 0xFFFFFFFF


def to_int32(dotted: str) -> int:
    """
    Parses a dotted quad. Returns 0 when the text is not four decimal octets of 0-255.

    >>> to_int32('192.168.1.20')
    3232235796
    >>> to_int32('255.255.255.255')
    4294967295
    >>> to_int32('256.1.1.1')
    0
    >>> to_int32('1.2.3')
    0
    """
    m = _dotted.fullmatch(dotted or '')
    if not m:
        return 0
    value = 0
    for group in m.groups():
        octet = int(group, 10)
        if octet > 255:
            return 0
        value = value * 256 + octet
    return value


def to_dotted(value: int) -> str:
    """
    >>> to_dotted(3232235796)
    '192.168.1.20'
    >>> to_dotted(0)
    '0.0.0.0'
    """
    if not 0 <= value <= MAX_INT32:
        raise ValueError("not an unsigned 32-bit value: %s" % value)
    return '.'.join(str((value >> shift) & 0xFF) for shift in (24, 16, 8, 0))


def is_dotted(text: str) -> bool:
    """ True when the text has the shape of a dotted quad, whatever the octet values.

    >>> is_dotted('999.1.1.1')
    True
    >>> is_dotted('a.b.c.d')
    False
    """
    return bool(_dotted.fullmatch(text or ''))
