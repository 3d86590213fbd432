"""
Fixed header layout and CRC of miniseed3 records.

See http://docs.fdsn.org/projects/miniseed3/en/latest/ for the format.
"""

import struct
from collections import namedtuple

import crc32c

MS_RECORD_INDICATOR = b"MS"

MS_FORMAT_VERSION_3 = 3

CRC_OFFSET = 28
"""byte offset of the CRC within the fixed header"""

FIXED_HEADER_SIZE = 40

# all fields little endian
HEADER_PACK_FORMAT = "<2sBBIHHBBBBdIIBBHI"

_HEADER_FIELDS = (
    "indicator formatVersion flags nanosecond year dayOfYear hour minute second "
    "encoding sampleRatePeriod numSamples crc publicationVersion "
    "identifierLength extraHeadersLength dataLength"
)


class MSeed3Header(namedtuple("MSeed3Header", _HEADER_FIELDS)):
    """
    Values of the 40 byte fixed header. sampleRatePeriod is the rate in
    Hz when positive, or the negated period in seconds.
    """

    __slots__ = ()

    @property
    def sampleRate(self) -> float:
        if self.sampleRatePeriod >= 0:
            return self.sampleRatePeriod
        return -1.0 / self.sampleRatePeriod

    def recordSize(self) -> int:
        """ Fixed header, identifier, extra headers and payload, in bytes."""
        return (
            FIXED_HEADER_SIZE
            + self.identifierLength
            + self.extraHeadersLength
            + self.dataLength
        )

    def sanityCheck(self) -> bool:
        """ True if the start time fields are within their ranges."""
        return (
            0 <= self.year < 3000
            and 1 <= self.dayOfYear <= 366
            and self.hour < 24
            and self.minute < 60
            and self.second <= 60
            and self.nanosecond < 1000000000
        )


def isValidHeader(recordBytes) -> bool:
    """ True if bytes start with the record indicator and format version 3."""
    return (
        len(recordBytes) >= 3
        and recordBytes[0:2] == MS_RECORD_INDICATOR
        and recordBytes[2] == MS_FORMAT_VERSION_3
    )


def unpackMSeed3FixedHeader(recordBytes) -> MSeed3Header:
    if len(recordBytes) < FIXED_HEADER_SIZE:
        raise Miniseed3Exception(f"Not enough bytes for header: {len(recordBytes)}")
    header = MSeed3Header(
        *struct.unpack(HEADER_PACK_FORMAT, recordBytes[0:FIXED_HEADER_SIZE])
    )
    if header.indicator != MS_RECORD_INDICATOR:
        raise Miniseed3Exception(
            f"expected record start to be MS but was {header.indicator!r}"
        )
    if header.formatVersion != MS_FORMAT_VERSION_3:
        raise Miniseed3Exception(
            f"expected format version {MS_FORMAT_VERSION_3} but was {header.formatVersion}"
        )
    return header


def calcCrc(recordBytes) -> int:
    """
    CRC-32C of a whole record, computed with the CRC field taken as zero.
    """
    head = bytearray(recordBytes[:FIXED_HEADER_SIZE])
    struct.pack_into("<I", head, CRC_OFFSET, 0)
    crc = crc32c.crc32c(head)
    return crc32c.crc32c(bytes(recordBytes[FIXED_HEADER_SIZE:]), crc)


def crcAsHex(crc) -> str:
    return f"0x{crc:08X}"


class Miniseed3Exception(Exception):
    """ Bytes are not a well formed miniseed3 fixed header."""
    pass
