"""
Whole file access to miniseed as channels of time ordered, merged segments.
"""

import logging
import os

import numpy as np

from .decoder import (
    MS_NOERROR,
    MSF_UNPACKDATA,
    MSF_VALIDATECRC,
    errorString,
)
from .exceptions import ArchiveNotLoaded, DecodeError, InvariantViolation
from .identity import Identity, calendarTime, decodeSid, parseIdentity
from .nstime import isoWZ
from .seedcodec import SAMPLETYPE_DOUBLE, SAMPLETYPE_FLOAT, SAMPLETYPE_INT
from .tracelist import MS3TraceID, MS3TraceSeg, Tolerance, convertsamples, readtracelist

logger = logging.getLogger(__name__)

SAMPLE_DTYPES = {
    SAMPLETYPE_INT: np.int32,
    SAMPLETYPE_FLOAT: np.float32,
    SAMPLETYPE_DOUBLE: np.float64,
}


def dtypeForSampleType(sampletype):
    try:
        return SAMPLE_DTYPES[sampletype]
    except KeyError:
        raise InvariantViolation(f"unknown sample type: {sampletype!r}") from None


class TraceArchive:
    """
    All records of a miniseed file, read in one pass by load() and merged
    into channels, one per identifier, each a list of contiguous segments.

    Records are merged into a channel when they share an identifier, and
    also publication version if split_version is true. time_tolerance, in
    seconds, and rate_tolerance, relative, control when a record counts as
    contiguous with a segment, the defaults being half a sample period and
    0.0001.

    Example:
    .. code-block:: python

        with TraceArchive("casee.mseed2") as archive:
            archive.load()
            for chan in archive.channels():
                for seg in chan.segments():
                    samples = seg.data_i32()
    """

    def __init__(
        self,
        path,
        unpack_data=True,
        validate_crc=False,
        verbose=False,
        split_version=False,
        time_tolerance=None,
        rate_tolerance=None,
    ):
        self.path = os.fspath(path)
        self.split_version = split_version
        self.tolerance = Tolerance(time=time_tolerance, rate=rate_tolerance)
        self._flags = 0
        self._verbose = 0
        self._mstl = None
        self._loadAttempted = False
        self._closed = False
        self.unpack_data(unpack_data)
        self.validate_crc(validate_crc)
        self.verbose(verbose)

    def unpack_data(self, unpack: bool):
        if unpack:
            self._flags |= MSF_UNPACKDATA
        else:
            self._flags &= ~MSF_UNPACKDATA

    def validate_crc(self, validate: bool):
        if validate:
            self._flags |= MSF_VALIDATECRC
        else:
            self._flags &= ~MSF_VALIDATECRC

    def verbose(self, verbose):
        self._verbose = int(verbose)

    def filename(self) -> str:
        return self.path

    @property
    def loaded(self) -> bool:
        return self._mstl is not None

    def load(self):
        """
        Read and merge the whole file. Raises DecodeError if any record
        fails to decode, after which the archive cannot be used.
        """
        if self._closed:
            raise InvariantViolation(f"load on closed archive for {self.path}")
        if self._loadAttempted:
            raise InvariantViolation(f"archive for {self.path} already loaded")
        self._loadAttempted = True
        status, mstl = readtracelist(
            self.path,
            tolerance=self.tolerance,
            splitversion=1 if self.split_version else 0,
            flags=self._flags,
            verbose=self._verbose,
        )
        if status != MS_NOERROR:
            raise DecodeError(status, f"{self.path}: {errorString(status)} ({status})")
        self._mstl = mstl
        logger.debug(f"Loaded {mstl.numtraces} traces from {self.path}")
        return self

    def _traceList(self):
        if self._closed:
            raise ArchiveNotLoaded(f"archive for {self.path} is closed")
        if self._mstl is None:
            raise ArchiveNotLoaded(f"archive for {self.path} is not loaded")
        return self._mstl

    def numtraces(self) -> int:
        return self._traceList().numtraces

    def channels(self) -> "ChannelIterable":
        """
        Channels ordered by identifier then publication version. The
        returned iterable may be iterated more than once.
        """
        self._traceList()
        return ChannelIterable(self)

    def channel(self, sid: str) -> "TraceChannel":
        """
        First channel with the given identifier, either a compact one like
        FDSN:IU_ANMO_00_B_H_Z or NET_STA_LOC_CHA codes.
        """
        traces = self._traceList().traces
        for trace in traces:
            if decodeSid(trace.sid) == sid:
                return TraceChannel(self, trace)
        for trace in traces:
            chan = TraceChannel(self, trace)
            try:
                codes = chan.identity().codes("_")
            except InvariantViolation:
                # not a FDSN identifier, only matchable by sid
                continue
            if codes == sid:
                return chan
        raise KeyError(sid)

    def numsamples(self) -> int:
        """ Total number of samples declared across all segments."""
        return sum(
            seg.samplecnt for trace in self._traceList().traces for seg in trace.segments
        )

    def close(self):
        """ Release the merged data, the archive is unusable after this."""
        self._closed = True
        self._mstl = None

    def __len__(self):
        return self.numtraces()

    def __iter__(self):
        return iter(self.channels())

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def __repr__(self):
        state = "loaded" if self.loaded else "not loaded"
        return f"TraceArchive({self.path!r}, {state})"


class ChannelIterable:
    def __init__(self, archive: TraceArchive):
        self._archive = archive

    def __iter__(self):
        for trace in self._archive._traceList().traces:
            yield TraceChannel(self._archive, trace)

    def __len__(self):
        return self._archive.numtraces()


class TraceChannel:
    """
    One identifier, and publication version when split, within a loaded
    archive.
    """

    def __init__(self, archive: TraceArchive, trace: MS3TraceID):
        self._archive = archive
        self._trace = trace

    @property
    def _id(self) -> MS3TraceID:
        self._archive._traceList()
        return self._trace

    @property
    def sid(self) -> str:
        return decodeSid(self._id.sid)

    def identity(self) -> Identity:
        return parseIdentity(self.sid)

    def network(self) -> str:
        return self.identity().network

    def station(self) -> str:
        return self.identity().station

    def location(self) -> str:
        return self.identity().location

    def channel(self) -> str:
        return self.identity().channel

    @property
    def start_time_ns(self) -> int:
        return self._id.earliest

    @property
    def end_time_ns(self) -> int:
        return self._id.latest

    def start_time(self):
        return calendarTime(self._id.earliest)

    def end_time(self):
        return calendarTime(self._id.latest)

    def pubversion(self) -> int:
        return self._id.pubversion

    def numsegments(self) -> int:
        return self._id.numsegments

    def segments(self) -> "SegmentIterable":
        """ Segments in time order, may be iterated more than once."""
        self._archive._traceList()
        return SegmentIterable(self)

    def __str__(self):
        return f"{self.sid}, version {self.pubversion()}, {self.numsegments()} segments"

    def __repr__(self):
        return f"<TraceChannel {self}>"


class SegmentIterable:
    def __init__(self, channel: TraceChannel):
        self._channel = channel

    def __iter__(self):
        for seg in self._channel._id.segments:
            yield TraceSegment(self._channel, seg)

    def __len__(self):
        return self._channel.numsegments()


class TraceSegment:
    """
    Contiguous samples within a channel.

    The typed accessors return a new array each call. When the requested
    type differs from sampletype() the segment is first converted in
    place, which fails with DecodeError rather than lose precision.
    """

    def __init__(self, channel: TraceChannel, seg: MS3TraceSeg):
        self._channel = channel
        self._seg = seg

    @property
    def _s(self) -> MS3TraceSeg:
        self._channel._archive._traceList()
        return self._seg

    @property
    def start_time_ns(self) -> int:
        return self._s.starttime

    @property
    def end_time_ns(self) -> int:
        return self._s.endtime

    def start_time(self):
        return calendarTime(self._s.starttime)

    def end_time(self):
        return calendarTime(self._s.endtime)

    def samprate(self) -> float:
        return self._s.samprate

    def samplecnt(self) -> int:
        """ Number of samples declared by the merged records."""
        return self._s.samplecnt

    def numsamples(self) -> int:
        """ Number of samples actually decoded."""
        return self._s.numsamples

    def datasize(self) -> int:
        return self._s.datasize

    def sampletype(self):
        return self._s.sampletype

    def data_unpacked(self) -> bool:
        seg = self._s
        return seg.samplecnt == seg.numsamples and seg.datasize > 0

    def convert(self, sampletype):
        """ Convert samples in place to i, f or d, a no-op if already that type."""
        dtypeForSampleType(sampletype)
        seg = self._s
        status = convertsamples(seg, sampletype, truncate=False)
        if status != MS_NOERROR:
            raise DecodeError(
                status,
                f"cannot convert {seg.sampletype!r} samples to {sampletype!r}: {errorString(status)}",
            )

    def data(self, sampletype) -> np.ndarray:
        dtype = dtypeForSampleType(sampletype)
        if not self.data_unpacked():
            return np.zeros(0, dtype=dtype)
        seg = self._s
        if seg.sampletype != sampletype:
            self.convert(sampletype)
        return np.frombuffer(seg.datasamples, dtype=dtype, count=seg.samplecnt).copy()

    def data_i32(self) -> np.ndarray:
        return self.data(SAMPLETYPE_INT)

    def data_f32(self) -> np.ndarray:
        return self.data(SAMPLETYPE_FLOAT)

    def data_f64(self) -> np.ndarray:
        return self.data(SAMPLETYPE_DOUBLE)

    def payload(self) -> bytes:
        """ Copy of the raw sample bytes, native byte order."""
        return bytes(self._s.datasamples)

    def __str__(self):
        seg = self._s
        return f"{isoWZ(self.start_time())} - {isoWZ(self.end_time())}, {seg.samprate} Hz, {seg.samplecnt} samples"

    def __repr__(self):
        return f"<TraceSegment {self}>"
