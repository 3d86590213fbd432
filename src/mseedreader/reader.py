import json
import logging
import os

import numpy as np
from jsonpointer import resolve_pointer

from .decoder import (
    MS_ENDOFFILE,
    MS_GENERROR,
    MS_NOERROR,
    MSF_UNPACKDATA,
    MSF_VALIDATECRC,
    MSFileParam,
    errorString,
    readmsr,
)
from .exceptions import DecodeError, EndOfStream, InvariantViolation, StaleRecordError
from .identity import Identity, calendarTime, decodeSid, parseIdentity, timeString
from .mseed3 import crcAsHex
from .nstime import ISOMONTHDAY_Z
from .seedcodec import encodingName

logger = logging.getLogger(__name__)


class RecordReader:
    """
    Sequential reader of the records in one miniseed file, version 2 or 3.

    Each read_next() decodes one record and returns a Record view onto it,
    which is only valid until the next read. Iterating the reader yields
    records until the end of the file, once only.

    Example:
    .. code-block:: python

        with RecordReader("casee.mseed2") as reader:
            for rec in reader:
                print(rec)
    """

    def __init__(self, path, unpack_data=True, validate_crc=False, verbose=False):
        self.path = os.fspath(path)
        self._msfp = MSFileParam()
        self._flags = 0
        self._verbose = 0
        self._generation = 0
        self._closed = False
        self._done = False
        self.unpack_data(unpack_data)
        self.validate_crc(validate_crc)
        self.verbose(verbose)

    def unpack_data(self, unpack: bool):
        """ Decode samples on subsequent reads."""
        if unpack:
            self._flags |= MSF_UNPACKDATA
        else:
            self._flags &= ~MSF_UNPACKDATA

    def validate_crc(self, validate: bool):
        """ Check the miniseed3 CRC on subsequent reads."""
        if validate:
            self._flags |= MSF_VALIDATECRC
        else:
            self._flags &= ~MSF_VALIDATECRC

    def verbose(self, verbose):
        """ Decoder verbosity, True or a level, logged via logging."""
        self._verbose = int(verbose)

    def filename(self) -> str:
        return self.path

    @property
    def offset(self) -> int:
        """ Byte offset of the next record."""
        return self._msfp.fpos

    @property
    def last(self) -> bool:
        """ True once the last record in the file has been read."""
        return self._msfp.last != 0

    @property
    def closed(self) -> bool:
        return self._closed

    def read_next(self) -> "Record":
        """
        Decode the next record.

        Raises EndOfStream when the file is exhausted and DecodeError, with
        the decoder status as code, on any other failure.
        """
        if self._closed:
            raise InvariantViolation(f"read on closed reader for {self.path}")
        self._generation += 1
        rv = readmsr(self._msfp, self.path, self._flags, self._verbose)
        if rv == MS_NOERROR:
            return Record(self, self._generation)
        if rv == MS_ENDOFFILE:
            raise EndOfStream(f"end of {self.path}")
        raise DecodeError(rv, f"{self.path}: {errorString(rv)} ({rv})")

    def __iter__(self):
        return self

    def __next__(self) -> "Record":
        if self._done:
            raise StopIteration
        try:
            return self.read_next()
        except EndOfStream:
            self._done = True
            raise StopIteration from None
        except DecodeError:
            self._done = True
            raise

    def close(self):
        """
        Release the decoder state, closing the file. Safe to call more than
        once, only the first call does anything.
        """
        if self._closed:
            return
        self._closed = True
        self._done = True
        self._generation += 1
        rv = readmsr(self._msfp, None, 0, 0)
        if rv != MS_NOERROR:
            raise InvariantViolation(
                f"closing reader for {self.path} failed: {errorString(rv)} ({rv})"
            )
        logger.debug(f"Closed reader for {self.path}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def __del__(self):
        if hasattr(self, "_msfp"):
            self.close()

    def __repr__(self):
        return f"RecordReader({self.path!r}, offset={self.offset})"


class Record:
    """
    View of the record most recently decoded by a RecordReader.

    Nothing here may be used after the reader reads again or is closed,
    doing so raises StaleRecordError.
    """

    def __init__(self, reader: RecordReader, generation: int):
        self._reader = reader
        self._generation = generation

    @property
    def _msr(self):
        if self._reader._generation != self._generation:
            raise StaleRecordError(
                "record view used after its reader read again or was closed"
            )
        return self._reader._msfp.msr

    @property
    def numsamples(self) -> int:
        """ Number of decoded samples, zero if data was not unpacked."""
        return self._msr.numsamples

    @property
    def samplecnt(self) -> int:
        """ Number of samples declared in the header."""
        return self._msr.samplecnt

    @property
    def sid(self) -> str:
        """ Compact identifier, like FDSN:IU_ANMO_00_B_H_Z."""
        return decodeSid(self._msr.sid)

    def identity(self) -> Identity:
        return parseIdentity(self.sid)

    @property
    def network(self) -> str:
        return self.identity().network

    @property
    def station(self) -> str:
        return self.identity().station

    @property
    def location(self) -> str:
        return self.identity().location

    @property
    def channel(self) -> str:
        return self.identity().channel

    def id(self) -> str:
        """ Seed style codes, like IU_ANMO_00_BHZ."""
        return self.identity().codes("_")

    @property
    def starttime_ns(self) -> int:
        return self._msr.starttime

    @property
    def endtime_ns(self) -> int:
        return self._msr.endtime()

    def starttime(self):
        """ Time of the first sample as UTC datetime."""
        return calendarTime(self._msr.starttime)

    def endtime(self):
        """ Time of the last sample as UTC datetime."""
        return calendarTime(self._msr.endtime())

    def time_string(self) -> str:
        """ Start time as year, day of year and time, like 2023,168,04:53:54.468648000."""
        return timeString(self._msr.starttime)

    @property
    def pubversion(self) -> int:
        return self._msr.pubversion

    @property
    def reclen(self) -> int:
        return self._msr.reclen

    @property
    def samprate(self) -> float:
        return self._msr.samprate

    @property
    def encoding(self) -> int:
        return self._msr.encoding

    def encoding_name(self) -> str:
        return encodingName(self._msr.encoding)

    @property
    def formatversion(self) -> int:
        return self._msr.formatversion

    @property
    def flags(self) -> int:
        return self._msr.flags

    @property
    def crc(self) -> int:
        return self._msr.crc

    @property
    def offset(self) -> int:
        """ Byte offset of this record in the file."""
        return self._msr.offset

    @property
    def sampletype(self):
        """ i, f, d or t when samples were decoded, otherwise None."""
        return self._msr.sampletype

    def samples(self) -> np.ndarray:
        """ Copy of the decoded samples, empty if data was not unpacked."""
        msr = self._msr
        if msr.datasamples is None:
            return np.zeros(0, dtype=np.int32)
        return np.array(msr.datasamples, copy=True)

    def extra_headers(self) -> dict:
        """ Extra headers parsed from json, empty dict if there are none."""
        extra = self._msr.extra
        if len(extra) == 0:
            return {}
        try:
            return json.loads(extra)
        except json.JSONDecodeError as e:
            raise DecodeError(MS_GENERROR, f"extra headers are not valid json: {e}") from e

    def extra_header(self, pointer: str, default=None):
        """
        Value in the extra headers at a JSON Pointer, like
        /FDSN/Time/Quality, or default when not present.
        """
        return resolve_pointer(self.extra_headers(), pointer, default)

    def summary(self) -> str:
        """ One line summary of the record."""
        msr = self._msr
        return f"{self.sid} {timeString(msr.starttime, ISOMONTHDAY_Z)} {timeString(msr.endtime(), ISOMONTHDAY_Z)} ({msr.samplecnt} pts)"

    def details(self, showExtraHeaders=True, showData=False) -> str:
        """ More detailed description of record."""
        msr = self._msr
        ehLines = ""
        eh = self.extra_headers()
        if showExtraHeaders and len(eh) > 0:
            ehLines = "\n          ".join(json.dumps(eh, indent=2).split("\n"))
        out = f"""\
          {self.sid}, version {msr.pubversion}, {msr.reclen} bytes (format: {msr.formatversion})
                       start time: {self.time_string()}
                number of samples: {msr.samplecnt}
                 sample rate (Hz): {msr.samprate}
                            flags: [{msr.flags:>08b}] 8 bits
                              CRC: {crcAsHex(msr.crc)}
              extra header length: {msr.extralength} bytes
              data payload length: {msr.datalength} bytes
                 payload encoding: {self.encoding_name()} (val: {msr.encoding})
                    extra headers: {ehLines}
"""
        if showData:
            data = self.samples()
            out += "data: \n"
            line = ""
            for i, val in enumerate(data):
                line += f" {val:<8}"
                if i % 10 == 9:
                    out += line + "\n"
                    line = ""
            if len(line) > 0:
                out += line + "\n"
        return out

    def __str__(self):
        msr = self._msr
        return f"{self.sid}, {msr.pubversion}, {msr.reclen}, {msr.samplecnt} samples, {msr.samprate} Hz, {self.time_string()}"

    def __repr__(self):
        try:
            return f"<Record {self}>"
        except StaleRecordError:
            return "<Record (stale)>"
