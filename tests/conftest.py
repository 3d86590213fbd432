import struct
from pathlib import Path

import crc32c
import numpy as np
import pytest

from mseedreader import seedcodec
from mseedreader.nstime import nstime2time, time2nstime

TEST_DIR = Path(__file__).parent

# 2023-06-17T04:53:54.4686Z, day 168
START_NS = time2nstime(2023, 168, 4, 53, 54, 468600000)


def steim1Frames(samples, numFrames):
    """
    Steim1 frames holding samples, every difference as a full 32 bit
    word. Unused words are marked with nibble 00.
    """
    diffs = [0] + [int(samples[i]) - int(samples[i - 1]) for i in range(1, len(samples))]
    out = b""
    d = 0
    for frameIdx in range(numFrames):
        words = [0] * 16
        nibbles = 0
        first = 1
        if frameIdx == 0:
            words[1] = int(samples[0]) & 0xFFFFFFFF
            words[2] = int(samples[-1]) & 0xFFFFFFFF
            first = 3
        for i in range(first, 16):
            if d < len(diffs):
                words[i] = diffs[d] & 0xFFFFFFFF
                nibbles |= 3 << (30 - 2 * i)
                d += 1
        words[0] = nibbles
        out += struct.pack(">16I", *words)
    if d < len(diffs):
        raise ValueError(f"{len(diffs)} samples do not fit in {numFrames} frames")
    return out


def mseed2Record(
    samples,
    starttime=START_NS,
    net="XX",
    sta="TEST",
    loc="00",
    chan="HHZ",
    rate=20,
    encoding=seedcodec.INTEGER,
    quality="D",
    seq=1,
    timeQuality=None,
    microseconds=0,
    timeCorr=0,
    actFlag=0,
    reclenExp=9,
):
    """
    A big endian miniseed2 record with blockette 1000, and 1001 if
    timeQuality is given.
    """
    reclen = 2**reclenExp
    parts = nstime2time(starttime)
    numBlockettes = 1 if timeQuality is None else 2
    dataOffset = 64
    header = struct.pack(
        ">6scc5s2s3s2sHHBBBxHHhhBBBBiHH",
        f"{seq:06d}".encode("ascii"),
        quality.encode("ascii"),
        b" ",
        sta.ljust(5).encode("ascii"),
        loc.ljust(2).encode("ascii"),
        chan.ljust(3).encode("ascii"),
        net.ljust(2).encode("ascii"),
        parts.year,
        parts.yday,
        parts.hour,
        parts.minute,
        parts.second,
        parts.nanosecond // 100000,
        len(samples),
        rate,
        1,
        actFlag,
        0,
        0,
        numBlockettes,
        timeCorr,
        dataOffset,
        48,
    )
    nextOffset = 56 if timeQuality is not None else 0
    b1000 = struct.pack(">HHBBBx", 1000, nextOffset, encoding, 1, reclenExp)
    b1001 = b""
    if timeQuality is not None:
        b1001 = struct.pack(">HHBbxB", 1001, 0, timeQuality, microseconds, 0)
    record = header + b1000 + b1001
    record += b"\x00" * (dataOffset - len(record))
    numFrames = (reclen - dataOffset) // 64
    if encoding == seedcodec.STEIM1:
        payload = steim1Frames(samples, numFrames)
    elif encoding == seedcodec.FLOAT:
        payload = np.asarray(samples, dtype=">f4").tobytes()
    elif encoding == seedcodec.DOUBLE:
        payload = np.asarray(samples, dtype=">f8").tobytes()
    elif encoding == seedcodec.SHORT:
        payload = np.asarray(samples, dtype=">i2").tobytes()
    else:
        payload = np.asarray(samples, dtype=">i4").tobytes()
    record += payload
    if len(record) > reclen:
        raise ValueError(f"{len(samples)} samples do not fit in {reclen} byte record")
    return record + b"\x00" * (reclen - len(record))


def mseed3Record(
    samples,
    starttime=START_NS,
    sid="FDSN:XX_TEST_00_H_H_Z",
    rate=20.0,
    encoding=seedcodec.INTEGER,
    pubversion=1,
    extra="",
    flags=0,
    badCrc=False,
):
    """ A miniseed3 record with a correct CRC, unless badCrc."""
    if encoding == seedcodec.ASCII:
        payload = samples.encode("ascii")
    elif encoding == seedcodec.FLOAT:
        payload = np.asarray(samples, dtype="<f4").tobytes()
    elif encoding == seedcodec.DOUBLE:
        payload = np.asarray(samples, dtype="<f8").tobytes()
    else:
        payload = np.asarray(samples, dtype="<i4").tobytes()
    sidBytes = sid.encode("ascii")
    extraBytes = extra.encode("utf-8")
    parts = nstime2time(starttime)
    header = struct.pack(
        "<ccBBIHHBBBBdIIBBHI",
        b"M",
        b"S",
        3,
        flags,
        parts.nanosecond,
        parts.year,
        parts.yday,
        parts.hour,
        parts.minute,
        parts.second,
        encoding,
        rate,
        len(samples),
        0,
        pubversion,
        len(sidBytes),
        len(extraBytes),
        len(payload),
    )
    record = bytearray(header + sidBytes + extraBytes + payload)
    crc = crc32c.crc32c(bytes(record))
    if badCrc:
        crc ^= 0xFFFF
    struct.pack_into("<I", record, 28, crc)
    return bytes(record)


def recordStart(index, samplesPerRecord=100, rate=20):
    """ Start of the index-th contiguous record."""
    return START_NS + index * samplesPerRecord * 1000000000 // rate


@pytest.fixture
def msfile(tmp_path):
    """ Writes records, as bytes, to a file and returns its path."""

    def write(*records, name="test.mseed"):
        path = tmp_path / name
        with open(path, "wb") as out:
            for rec in records:
                out.write(rec)
        return path

    return write


@pytest.fixture
def multipleSeed():
    path = TEST_DIR / "multiple.seed"
    if not path.exists():
        pytest.skip(f"reference file not found: {path}")
    return path
