"""
Channel identity and time helpers shared by records and traces.
"""

from collections import namedtuple
from datetime import datetime
from typing import Union

from .exceptions import InvariantViolation
from .nstime import SEEDORDINAL, nstime2datetime, nstime2timestr
from .sourceid import FDSNSourceIdException, sid2nslc


class Identity(namedtuple("Identity", "network station location channel")):
    """
    Network, station, location and channel recovered from a compact
    identifier.
    """

    __slots__ = ()

    def codes(self, sep="_") -> str:
        return sep.join(self)

    def __str__(self) -> str:
        return self.codes()


def decodeSid(raw: Union[bytes, str]) -> str:
    """
    Text of a compact identifier as held by the decoder.

    Raises InvariantViolation if the bytes are not valid text.
    """
    if isinstance(raw, str):
        return raw
    try:
        return raw.rstrip(b"\x00").decode("ascii")
    except UnicodeDecodeError as e:
        raise InvariantViolation(f"identifier is not valid text: {raw!r}") from e


def parseIdentity(sid: str) -> Identity:
    """
    Split a compact identifier, like FDSN:IU_ANMO_00_B_H_Z, into an
    Identity with trimmed fields.
    """
    try:
        nslc = sid2nslc(sid)
    except FDSNSourceIdException as e:
        raise InvariantViolation(f"malformed identifier: {sid}") from e
    return Identity(
        nslc.networkCode.strip(),
        nslc.stationCode.strip(),
        nslc.locationCode.strip(),
        nslc.channelCode.strip(),
    )


def calendarTime(nstime: int) -> datetime:
    """ UTC datetime for epoch nanoseconds, truncated to microseconds."""
    return nstime2datetime(nstime)


def timeString(nstime: int, timeformat=SEEDORDINAL, subseconds=True) -> str:
    """ Formatted time, by default year, day of year and time to the nanosecond."""
    return nstime2timestr(nstime, timeformat, subseconds)
