# Philip Crotwell
# University of South Carolina, 2019
# https://www.seis.sc.edu
# /
# decode side of the seed codecs, encodings as defined in SEED blockette 1000
# and the miniseed3 fixed header

from typing import Union

import numpy

from .exceptions import CodecException, UnsupportedCompressionType
from .steim import decodeSteim1, decodeSteim2


# ascii text
ASCII: int = 0

# 16 bit integer, or java short
SHORT: int = 1

# 24 bit integer
INT24: int = 2

# 32 bit integer, or java int
INTEGER: int = 3

# ieee float
FLOAT: int = 4

# ieee double
DOUBLE: int = 5

# Steim1 compression
STEIM1: int = 10

# Steim2 compression
STEIM2: int = 11

# Steim3 compression, not implemented
STEIM3: int = 19

# CDSN 16 bit gain ranged
CDSN: int = 16

# (A)SRO
SRO: int = 30

# DWWSSN 16 bit
DWWSSN: int = 32

BIG_ENDIAN = 1
LITTLE_ENDIAN = 0

SAMPLETYPE_INT = "i"
"""32 bit integer samples"""
SAMPLETYPE_FLOAT = "f"
"""32 bit float samples"""
SAMPLETYPE_DOUBLE = "d"
"""64 bit float samples"""
SAMPLETYPE_TEXT = "t"
"""text payload, one byte per sample"""

ENCODING_NAMES = {
    ASCII: "Text",
    SHORT: "16-bit integer",
    INT24: "24-bit integer",
    INTEGER: "32-bit integer",
    FLOAT: "32-bit float (IEEE single)",
    DOUBLE: "64-bit float (IEEE double)",
    STEIM1: "STEIM-1 integer compression",
    STEIM2: "STEIM-2 integer compression",
    STEIM3: "STEIM-3 integer compression",
    CDSN: "CDSN 16-bit gain ranged",
    SRO: "SRO 16-bit gain ranged",
    DWWSSN: "DWWSSN 16-bit gain ranged",
}

_SAMPLETYPE_DTYPES = {
    SAMPLETYPE_INT: numpy.int32,
    SAMPLETYPE_FLOAT: numpy.float32,
    SAMPLETYPE_DOUBLE: numpy.float64,
    SAMPLETYPE_TEXT: numpy.uint8,
}


def encodingName(encoding: int) -> str:
    """
    Name of the encoding, for display.
    """
    return ENCODING_NAMES.get(encoding, f"Unknown encoding {encoding}")


def canDecompress(encoding: int) -> bool:
    """
    True if the given encoding can be decompressed by this library.
    """
    return encoding in (ASCII, SHORT, INTEGER, FLOAT, DOUBLE, STEIM1, STEIM2, DWWSSN)


def sampleTypeForEncoding(encoding: int) -> str:
    """
    Sample type of decoded data for an encoding, one of i, f, d or t.
    """
    if encoding == ASCII:
        return SAMPLETYPE_TEXT
    if encoding == FLOAT:
        return SAMPLETYPE_FLOAT
    if encoding == DOUBLE:
        return SAMPLETYPE_DOUBLE
    if encoding in (SHORT, INTEGER, STEIM1, STEIM2, DWWSSN):
        return SAMPLETYPE_INT
    raise UnsupportedCompressionType(f"encoding {encoding} has no sample type")


def numpyDTFromSampleType(sampletype: str):
    """
    Native numpy dtype used to hold samples of the given type.
    """
    try:
        return numpy.dtype(_SAMPLETYPE_DTYPES[sampletype])
    except KeyError as exc:
        raise UnsupportedCompressionType(
            f"sample type {sampletype!r} not mapable to numpy type"
        ) from exc


def _primitive(dataBytes, numSamples, dtype, littleEndian):
    dt = numpy.dtype(dtype).newbyteorder("<" if littleEndian else ">")
    if len(dataBytes) < dt.itemsize * numSamples:
        raise CodecException(
            f"Not enough bytes for {numSamples} {8*dt.itemsize} bit data points, only {len(dataBytes)} bytes.",
        )
    return numpy.frombuffer(dataBytes, dtype=dt, count=numSamples)


def decompress(
    compressionType: int,
    dataBytes: Union[bytes, bytearray],
    numSamples: int,
    littleEndian: bool,
) -> numpy.ndarray:
    """
    Decompress the samples from the provided bytes and
    return a native byte order array of the decompressed values.

    16 bit values are widened to 32 bit integers so every integer encoding
    decodes to sample type 'i'. Text decodes to one uint8 per character.

    @param compressionType compression format as defined in SEED blockette 1000
    @param dataBytes input bytes to be decoded
    @param numSamples the number of samples that can be decoded from dataBytes
    @param littleEndian if True, dataBytes is little-endian, ignored for Steim
    @returns array of length numSamples.
    @throws CodecException fail to decompress.
    @throws UnsupportedCompressionType unsupported compression type
    """
    sampletype = sampleTypeForEncoding(compressionType)
    nativeDT = numpyDTFromSampleType(sampletype)

    # records with no data points, ex detection blockette, often have the
    # compression type set to 0 even though there is nothing to decode
    if numSamples == 0:
        return numpy.zeros(0, dtype=nativeDT)

    if compressionType == ASCII:
        out = _primitive(dataBytes, numSamples, numpy.uint8, littleEndian)
    elif compressionType in (SHORT, DWWSSN):
        out = _primitive(dataBytes, numSamples, numpy.int16, littleEndian)
    elif compressionType == INTEGER:
        out = _primitive(dataBytes, numSamples, numpy.int32, littleEndian)
    elif compressionType == FLOAT:
        out = _primitive(dataBytes, numSamples, numpy.float32, littleEndian)
    elif compressionType == DOUBLE:
        out = _primitive(dataBytes, numSamples, numpy.float64, littleEndian)
    elif compressionType == STEIM1:
        out = decodeSteim1(dataBytes, numSamples, 0)
    elif compressionType == STEIM2:
        out = decodeSteim2(dataBytes, numSamples, 0)
    else:
        raise UnsupportedCompressionType(
            f"Type {compressionType} is not supported at this time, numsamples: {numSamples}.",
        )
    return out.astype(nativeDT)
