"""
Bulk reading of a file into a trace list, records merged into per channel,
time ordered, contiguous segments. Also in place sample type conversion
of a segment.

Like the decoder, these functions report failures as MS_* status codes.
"""

import bisect
import logging

import numpy as np

from .decoder import (
    MS_ENDOFFILE,
    MS_GENERROR,
    MS_NOERROR,
    MSF_UNPACKDATA,
    MSFileParam,
    readmsr,
    sampleTimeOffset,
)
from .nstime import NSTMODULUS
from .seedcodec import (
    SAMPLETYPE_DOUBLE,
    SAMPLETYPE_FLOAT,
    SAMPLETYPE_INT,
    numpyDTFromSampleType,
)

logger = logging.getLogger(__name__)

RATE_TOLERANCE = 0.0001
"""default relative sample rate tolerance, |1 - r1/r2| must be below this"""


class Tolerance:
    """
    Time and sample rate tolerances used when deciding if a record is
    contiguous with a segment.

    time is in seconds, None means half a sample period. rate is relative,
    None means RATE_TOLERANCE.
    """

    def __init__(self, time=None, rate=None):
        self.time = time
        self.rate = rate

    def timeTolerance_ns(self, samprate):
        if self.time is not None:
            return int(self.time * NSTMODULUS)
        if samprate <= 0.0:
            return 0
        return int(0.5 / samprate * NSTMODULUS)

    def rateTolerable(self, rateA, rateB):
        tol = RATE_TOLERANCE if self.rate is None else self.rate
        if rateA == rateB:
            return True
        if rateA <= 0.0 or rateB <= 0.0:
            return False
        return abs(1.0 - rateA / rateB) < tol


class MS3TraceSeg:
    """
    A contiguous run of samples. datasamples is the raw payload in native
    byte order, interpreted according to sampletype.
    """

    def __init__(self, starttime, endtime, samprate):
        self.starttime = starttime
        self.endtime = endtime
        self.samprate = samprate
        self.samplecnt = 0
        self.datasamples = bytearray()
        self.datasize = 0
        self.numsamples = 0
        self.sampletype = None
        # sample arrays not yet joined into datasamples
        self._chunks = []

    def _add(self, msr, atEnd):
        if atEnd:
            self.endtime = msr.endtime()
        else:
            self.starttime = msr.starttime
        self.samplecnt += msr.samplecnt
        if msr.numsamples > 0:
            if self.sampletype is None:
                self.sampletype = msr.sampletype
            chunk = msr.datasamples.copy()
            if atEnd:
                self._chunks.append(chunk)
            else:
                self._chunks.insert(0, chunk)
            self.numsamples += msr.numsamples

    def _absorb(self, other):
        """ Append the following segment other onto this one."""
        self.endtime = other.endtime
        self.samplecnt += other.samplecnt
        self.numsamples += other.numsamples
        if self.sampletype is None:
            self.sampletype = other.sampletype
        self._chunks.extend(other._chunks)

    def _finish(self):
        if self._chunks:
            self.datasamples = bytearray(np.concatenate(self._chunks).tobytes())
            self._chunks = []
        self.datasize = len(self.datasamples)

    def acceptsType(self, msr):
        return (
            msr.numsamples == 0
            or self.sampletype is None
            or self.sampletype == msr.sampletype
        )


class MS3TraceID:
    """
    All segments for one identifier, and publication version when versions
    are split, kept in time order.
    """

    def __init__(self, sid, pubversion):
        self.sid = sid
        self.pubversion = pubversion
        self.earliest = None
        self.latest = None
        self.segments = []

    @property
    def numsegments(self):
        return len(self.segments)

    def addmsr(self, msr, tolerance):
        """ Merge a record into an existing segment, or start a new one."""
        if self.earliest is None or msr.starttime < self.earliest:
            self.earliest = msr.starttime
        endtime = msr.endtime()
        if self.latest is None or endtime > self.latest:
            self.latest = endtime
        if msr.pubversion > self.pubversion:
            self.pubversion = msr.pubversion

        timeTol = tolerance.timeTolerance_ns(msr.samprate)
        if msr.samprate > 0.0 and msr.samplecnt > 0:
            for idx, seg in enumerate(self.segments):
                if not tolerance.rateTolerable(msr.samprate, seg.samprate):
                    continue
                if not seg.acceptsType(msr):
                    continue
                # record follows the segment
                nextStart = sampleTimeOffset(seg.endtime, seg.samprate, 1)
                if abs(msr.starttime - nextStart) <= timeTol:
                    seg._add(msr, True)
                    self._mergeFollowing(idx, tolerance)
                    return seg
                # record precedes the segment
                nextStart = sampleTimeOffset(endtime, msr.samprate, 1)
                if abs(seg.starttime - nextStart) <= timeTol:
                    seg._add(msr, False)
                    if idx > 0:
                        self._mergeFollowing(idx - 1, tolerance)
                    return seg

        seg = MS3TraceSeg(msr.starttime, endtime, msr.samprate)
        seg._add(msr, True)
        starts = [s.starttime for s in self.segments]
        self.segments.insert(bisect.bisect_right(starts, seg.starttime), seg)
        return seg

    def _mergeFollowing(self, idx, tolerance):
        """ Join segment idx with idx+1 if adding a record closed the gap."""
        if idx + 1 >= len(self.segments):
            return
        seg = self.segments[idx]
        other = self.segments[idx + 1]
        if not tolerance.rateTolerable(seg.samprate, other.samprate):
            return
        if (
            seg.sampletype is not None
            and other.sampletype is not None
            and seg.sampletype != other.sampletype
        ):
            return
        nextStart = sampleTimeOffset(seg.endtime, seg.samprate, 1)
        if abs(other.starttime - nextStart) <= tolerance.timeTolerance_ns(seg.samprate):
            seg._absorb(other)
            del self.segments[idx + 1]


class MS3TraceList:
    """
    Trace ids, kept sorted by identifier then publication version.
    """

    def __init__(self):
        self.traces = []
        self._keys = []

    @property
    def numtraces(self):
        return len(self.traces)

    def findOrCreate(self, sid, pubversion, splitversion):
        key = (sid, pubversion if splitversion else 0)
        idx = bisect.bisect_left(self._keys, key)
        if idx < len(self._keys) and self._keys[idx] == key:
            return self.traces[idx]
        trace = MS3TraceID(sid, pubversion)
        self._keys.insert(idx, key)
        self.traces.insert(idx, trace)
        return trace

    def addmsr(self, msr, splitversion=0, tolerance=None):
        if tolerance is None:
            tolerance = Tolerance()
        trace = self.findOrCreate(msr.sid, msr.pubversion, splitversion)
        return trace.addmsr(msr, tolerance)

    def finish(self):
        for trace in self.traces:
            trace.segments.sort(key=lambda s: s.starttime)
            for seg in trace.segments:
                seg._finish()


def readtracelist(path, tolerance=None, splitversion=0, flags=MSF_UNPACKDATA, verbose=0):
    """
    Read every record of the file at path into a new trace list.

    Returns a tuple of status and the trace list, the list is None unless
    the status is MS_NOERROR.
    """
    msfp = MSFileParam()
    mstl = MS3TraceList()
    if tolerance is None:
        tolerance = Tolerance()
    status = MS_NOERROR
    while True:
        rv = readmsr(msfp, path, flags, verbose)
        if rv == MS_ENDOFFILE:
            break
        if rv != MS_NOERROR:
            status = rv
            break
        mstl.addmsr(msfp.msr, splitversion, tolerance)
    closeRv = readmsr(msfp, None, 0, 0)
    if status == MS_NOERROR and closeRv != MS_NOERROR:
        status = closeRv
    if status != MS_NOERROR:
        return status, None
    mstl.finish()
    if verbose > 0:
        logger.info(f"Read {msfp.recordcount} records into {mstl.numtraces} traces from {path}")
    return MS_NOERROR, mstl


_INTEGRAL_TYPES = (SAMPLETYPE_INT,)
_FLOAT_TYPES = (SAMPLETYPE_FLOAT, SAMPLETYPE_DOUBLE)


def convertsamples(seg: MS3TraceSeg, sampletype: str, truncate=False) -> int:
    """
    Convert the samples of a segment in place to sampletype, one of
    i, f or d.

    Unless truncate is true a conversion that would lose precision, a
    fractional float to integer or a value that does not survive the
    narrower type, fails with MS_GENERROR and leaves the segment untouched.
    """
    if seg.sampletype == sampletype:
        return MS_NOERROR
    if sampletype not in _INTEGRAL_TYPES + _FLOAT_TYPES:
        logger.warning(f"Cannot convert to sample type {sampletype!r}")
        return MS_GENERROR
    if seg.sampletype not in _INTEGRAL_TYPES + _FLOAT_TYPES:
        logger.warning(f"Cannot convert from sample type {seg.sampletype!r}")
        return MS_GENERROR
    if seg.numsamples == 0 or seg.datasize == 0:
        logger.warning("No samples to convert")
        return MS_GENERROR

    src = np.frombuffer(
        seg.datasamples, dtype=numpyDTFromSampleType(seg.sampletype), count=seg.numsamples
    )
    targetDT = numpyDTFromSampleType(sampletype)
    if sampletype in _INTEGRAL_TYPES:
        info = np.iinfo(targetDT)
        if not np.all(np.isfinite(src)) or np.any(src < info.min) or np.any(src > info.max):
            logger.warning(f"Sample values out of range for {sampletype!r}")
            return MS_GENERROR
        if truncate:
            out = np.trunc(src).astype(targetDT)
        else:
            out = src.astype(targetDT)
    else:
        out = src.astype(targetDT)

    if not truncate:
        back = out.astype(src.dtype)
        if not np.array_equal(back, src, equal_nan=True):
            logger.warning(
                f"Loss of precision converting {seg.sampletype!r} to {sampletype!r}, truncate not allowed"
            )
            return MS_GENERROR

    seg.datasamples = bytearray(out.tobytes())
    seg.datasize = len(seg.datasamples)
    seg.sampletype = sampletype
    return MS_NOERROR
