"""
Record level decoding of miniseed2 and miniseed3 files.

This is the low level side of the package. Nothing here raises into the
caller, every failure is reported as one of the MS_* status codes and the
decoded record is kept on the MSFileParam that read it, reused for the
next read.
"""

import json
import logging
import os
import struct

from . import mseed2, mseed3
from .exceptions import CodecException, SteimException, UnsupportedCompressionType
from .nstime import NSTMODULUS, time2nstime
from .seedcodec import (
    LITTLE_ENDIAN,
    canDecompress,
    decompress,
    encodingName,
    sampleTypeForEncoding,
)
from .sourceid import nslc2sid

logger = logging.getLogger(__name__)

# status codes, values as in libmseed
MS_ENDOFFILE = 1
MS_NOERROR = 0
MS_GENERROR = -1
MS_NOTSEED = -2
MS_WRONGLENGTH = -3
MS_OUTOFRANGE = -4
MS_UNKNOWNFORMAT = -5
MS_STBADCOMPFLAG = -6
MS_INVALIDCRC = -7

ERROR_STRINGS = {
    MS_ENDOFFILE: "End of file reached",
    MS_NOERROR: "No error",
    MS_GENERROR: "Generic error",
    MS_NOTSEED: "No miniSEED data detected",
    MS_WRONGLENGTH: "Length of data read was not correct",
    MS_OUTOFRANGE: "SEED record length out of range",
    MS_UNKNOWNFORMAT: "Unknown data encoding format",
    MS_STBADCOMPFLAG: "Bad Steim compression flag(s) detected",
    MS_INVALIDCRC: "Invalid CRC detected",
}

# read flags
MSF_UNPACKDATA = 0x0001
"""decode data samples while reading"""
MSF_VALIDATECRC = 0x0004
"""validate miniseed3 CRC while reading"""

# initial read, enough for the fixed header and blockettes of most records
READ_CHUNK = 512


def errorString(code: int) -> str:
    """ Description of a status code."""
    return ERROR_STRINGS.get(code, f"Unknown error code: {code}")


class _Status(Exception):
    """ Internal, carries a status code out of the parse functions."""

    def __init__(self, code, message):
        super().__init__(message)
        self.code = code


class MS3Record:
    """
    A decoded record, either format version 2 or 3 mapped onto the
    miniseed3 field set.

    Owned by the MSFileParam that read it, the same instance is refilled
    by each read.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self.record = b""
        self.offset = 0
        self.reclen = 0
        self.sid = b""
        self.formatversion = 0
        self.flags = 0
        self.starttime = 0
        self.samprate = 0.0
        self.encoding = -1
        self.pubversion = 0
        self.samplecnt = 0
        self.crc = 0
        self.extralength = 0
        self.datalength = 0
        self.extra = ""
        self.datasamples = None
        self.datasize = 0
        self.numsamples = 0
        self.sampletype = None

    def endtime(self) -> int:
        """ Time of the last sample, epoch nanoseconds."""
        return sampleTimeOffset(self.starttime, self.samprate, self.samplecnt - 1)


def sampleTimeOffset(starttime: int, samprate: float, count: int) -> int:
    """ Epoch nanoseconds count samples after starttime."""
    if samprate <= 0.0 or count <= 0:
        return starttime
    return starttime + int(count / samprate * NSTMODULUS + 0.5)


class MSFileParam:
    """
    Read state for one file: the open file, byte cursor, last record flag
    and the reusable decoded record.
    """

    def __init__(self):
        self.path = None
        self.fp = None
        self.filesize = 0
        self.fpos = 0
        self.last = 0
        self.msr = MS3Record()
        self.recordcount = 0


def readmsr(msfp: MSFileParam, path, flags=MSF_UNPACKDATA, verbose=0) -> int:
    """
    Read and decode the next record of the file at path.

    The decoded record is left in msfp.msr, valid until the next call.
    Calling with path None closes the file and releases the record.

    Returns MS_NOERROR, MS_ENDOFFILE or a negative error code.
    """
    if path is None:
        return _close(msfp, verbose)

    if msfp.fp is None:
        try:
            msfp.fp = open(path, "rb")
            msfp.filesize = os.fstat(msfp.fp.fileno()).st_size
        except OSError as e:
            logger.warning(f"Cannot open {path}: {e}")
            msfp.fp = None
            return MS_GENERROR
        msfp.path = path
        if verbose > 0:
            logger.info(f"Opened {path}, {msfp.filesize} bytes")

    if msfp.fpos >= msfp.filesize:
        msfp.last = 1
        return MS_ENDOFFILE

    msr = msfp.msr
    msr.reset()
    try:
        readRecordAt(msfp.fp, msfp.fpos, msfp.filesize, flags, verbose, msr)
    except _Status as e:
        logger.warning(f"{path}: offset {msfp.fpos}: {e}")
        msr.reset()
        return e.code
    except OSError as e:
        logger.warning(f"{path}: offset {msfp.fpos}: {e}")
        msr.reset()
        return MS_GENERROR

    msfp.fpos += msr.reclen
    msfp.recordcount += 1
    if msfp.fpos >= msfp.filesize:
        msfp.last = 1
    if verbose > 0:
        logger.info(
            f"Read {msr.sid.decode('ascii', 'replace')}, {msr.reclen} bytes at offset {msr.offset}"
        )
    return MS_NOERROR


def _close(msfp, verbose):
    if msfp.fp is not None:
        try:
            msfp.fp.close()
        except OSError as e:
            logger.warning(f"Error closing {msfp.path}: {e}")
            return MS_GENERROR
        if verbose > 0:
            logger.info(f"Closed {msfp.path} after {msfp.recordcount} records")
    msfp.fp = None
    msfp.path = None
    msfp.filesize = 0
    msfp.fpos = 0
    msfp.last = 0
    msfp.msr.reset()
    return MS_NOERROR


def _readExact(fp, offset, size):
    fp.seek(offset)
    buf = fp.read(size)
    if len(buf) != size:
        raise _Status(MS_WRONGLENGTH, f"Short read, {len(buf)} of {size} bytes")
    return buf


def readRecordAt(fp, offset, filesize, flags, verbose, msr):
    """
    Decode the record starting at offset into msr, raising _Status on
    failure.
    """
    head = _readExact(fp, offset, min(READ_CHUNK, filesize - offset))
    if mseed3.isValidHeader(head):
        _parseMSeed3(fp, offset, filesize, head, flags, verbose, msr)
    elif mseed2.isValidHeader(head):
        _parseMSeed2(fp, offset, filesize, head, flags, verbose, msr)
    else:
        raise _Status(MS_NOTSEED, "No miniSEED record header found")
    msr.offset = offset


def _timeOrRange(*parts):
    try:
        return time2nstime(*parts)
    except ValueError as e:
        raise _Status(MS_OUTOFRANGE, f"Record start time out of range: {parts}") from e


def _parseMSeed3(fp, offset, filesize, head, flags, verbose, msr):
    try:
        header = mseed3.unpackMSeed3FixedHeader(head)
    except mseed3.Miniseed3Exception as e:
        raise _Status(MS_NOTSEED, str(e)) from e
    if not header.sanityCheck():
        raise _Status(MS_OUTOFRANGE, "Fixed header values out of range")
    reclen = header.recordSize()
    if offset + reclen > filesize:
        raise _Status(
            MS_WRONGLENGTH,
            f"Record length {reclen} extends past end of file ({filesize})",
        )
    record = head[:reclen] if reclen <= len(head) else _readExact(fp, offset, reclen)

    if flags & MSF_VALIDATECRC:
        crc = mseed3.calcCrc(record)
        if crc != header.crc:
            raise _Status(
                MS_INVALIDCRC,
                f"CRC is invalid: calc {mseed3.crcAsHex(crc)} header {mseed3.crcAsHex(header.crc)}",
            )

    pos = mseed3.FIXED_HEADER_SIZE
    msr.sid = bytes(record[pos : pos + header.identifierLength])
    pos += header.identifierLength
    try:
        msr.extra = record[pos : pos + header.extraHeadersLength].decode("utf-8")
    except UnicodeDecodeError as e:
        raise _Status(MS_GENERROR, "Extra headers are not valid UTF-8") from e
    pos += header.extraHeadersLength

    msr.record = record
    msr.reclen = reclen
    msr.formatversion = mseed3.MS_FORMAT_VERSION_3
    msr.flags = header.flags
    msr.starttime = _timeOrRange(
        header.year,
        header.dayOfYear,
        header.hour,
        header.minute,
        header.second,
        header.nanosecond,
    )
    msr.samprate = header.sampleRate
    msr.encoding = header.encoding
    msr.pubversion = header.publicationVersion
    msr.samplecnt = header.numSamples
    msr.crc = header.crc
    msr.extralength = header.extraHeadersLength
    msr.datalength = header.dataLength
    if verbose > 1:
        logger.debug(
            f"miniseed3 {msr.sid!r}, encoding {msr.encoding}, {msr.samplecnt} samples"
        )
    if flags & MSF_UNPACKDATA:
        # primitive encodings in miniseed3 are always little endian
        _unpackData(msr, record[pos : pos + header.dataLength], True)


def _detectLength(fp, offset, filesize):
    """
    Record length of a miniseed2 record without blockette 1000, found by
    looking for the next record header, or the end of the file.
    """
    length = mseed2.MIN_RECORD_LENGTH
    while length <= mseed2.MAX_RECORD_LENGTH and offset + length <= filesize:
        if offset + length == filesize:
            return length
        fp.seek(offset + length)
        nxt = fp.read(mseed2.HEADER_SIZE)
        if mseed2.isValidHeader(nxt) or mseed3.isValidHeader(nxt):
            return length
        length *= 2
    raise _Status(MS_WRONGLENGTH, "Cannot detect record length, no blockette 1000")


def _v2flags(header):
    flags = 0
    if header.actFlag & 0x01:
        # calibration signals present
        flags |= 0x01
    if header.qualFlag & 0x80:
        # time tag is questionable
        flags |= 0x02
    if header.ioFlag & 0x20:
        # clock locked
        flags |= 0x04
    return flags


def _parseMSeed2(fp, offset, filesize, head, flags, verbose, msr):
    try:
        header = mseed2.unpackMiniseedHeader(head)
        blockettes = mseed2.applyBlockettes(header, head)
    except (mseed2.MiniseedException, UnicodeDecodeError) as e:
        raise _Status(MS_NOTSEED, str(e)) from e

    reclen = header.recordLength
    if reclen is None:
        reclen = _detectLength(fp, offset, filesize)
        if verbose > 1:
            logger.debug(f"No blockette 1000, detected record length {reclen}")
    if offset + reclen > filesize:
        raise _Status(
            MS_WRONGLENGTH,
            f"Record length {reclen} extends past end of file ({filesize})",
        )
    record = head[:reclen] if reclen <= len(head) else _readExact(fp, offset, reclen)

    msr.record = record
    msr.reclen = reclen
    msr.sid = nslc2sid(
        header.network, header.station, header.location, header.channel
    ).encode("ascii")
    msr.formatversion = 2
    msr.flags = _v2flags(header)
    try:
        msr.starttime = header.starttime_ns()
    except ValueError as e:
        raise _Status(MS_OUTOFRANGE, f"Record start time out of range: {header.btime}") from e
    msr.samprate = header.sampleRate
    msr.encoding = header.encoding
    msr.pubversion = header.pubversion
    msr.samplecnt = header.numSamples
    for b in blockettes:
        if isinstance(b, mseed2.Blockette1001):
            msr.extra = json.dumps({"FDSN": {"Time": {"Quality": b.timeQuality}}})
    msr.extralength = len(msr.extra)

    if header.numSamples > 0:
        if header.dataOffset < mseed2.HEADER_SIZE or header.dataOffset >= reclen:
            raise _Status(
                MS_GENERROR, f"Data offset {header.dataOffset} out of record bounds"
            )
        payload = record[header.dataOffset : reclen]
        msr.datalength = len(payload)
    else:
        payload = b""
    if verbose > 1:
        logger.debug(
            f"miniseed2 {header.codes()}, encoding {msr.encoding}, {msr.samplecnt} samples"
        )
    if flags & MSF_UNPACKDATA:
        _unpackData(msr, payload, header.dataByteorder == LITTLE_ENDIAN)


def _unpackData(msr, payload, littleEndian):
    if msr.samplecnt == 0:
        return
    if not canDecompress(msr.encoding):
        raise _Status(
            MS_UNKNOWNFORMAT, f"Cannot decode {encodingName(msr.encoding)} (encoding {msr.encoding})"
        )
    try:
        samples = decompress(msr.encoding, payload, msr.samplecnt, littleEndian)
        msr.sampletype = sampleTypeForEncoding(msr.encoding)
    except UnsupportedCompressionType as e:
        raise _Status(MS_UNKNOWNFORMAT, str(e)) from e
    except SteimException as e:
        raise _Status(MS_STBADCOMPFLAG, str(e)) from e
    except (CodecException, struct.error) as e:
        raise _Status(MS_GENERROR, str(e)) from e
    msr.datasamples = samples
    msr.numsamples = len(samples)
    msr.datasize = samples.nbytes
