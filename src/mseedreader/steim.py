"""
Decoding of Steim1 and Steim2 compressed data blocks to an array of
integer values.

Steim compression scheme Copyrighted by Dr. Joseph Steim.

Reference material found in Appendix B of SEED Reference Manual,
2nd Ed., pp. 119-125, Federation of Digital Seismic Networks, et al.
February, 1993

Coding concepts gleaned from code written by Guy Stewart (IRIS, 1991),
Tom McSweeney (IRIS, 2000), Doug Neuhauser (UC Berkeley, 2010),
Kevin Frechette (ISTI, 2010) and Robert Casey (IRIS DMC).
"""

import logging
import struct

import numpy as np

from .exceptions import SteimException

logger = logging.getLogger(__name__)

FRAME_SIZE = 64
WORDS_PER_FRAME = 16


def _signed(val: int, bits: int) -> int:
    """ Interpret the low bits of val as a two's complement integer."""
    val &= (1 << bits) - 1
    if val >= 1 << (bits - 1):
        val -= 1 << bits
    return val


def _packed(word: int, headerSize: int, diffCount: int, bitSize: int) -> list:
    """ Split word into diffCount signed values of bitSize, after headerSize bits."""
    out = []
    for d in range(diffCount):
        shift = 32 - headerSize - (d + 1) * bitSize
        out.append(_signed(word >> shift, bitSize))
    return out


def extractSteim1Diffs(words, frameIdx: int) -> list:
    """
    Differences held in one 64 byte Steim1 frame, given as 16 unsigned
    big endian words. Header words, nibble 00, are skipped.
    """
    nibbles = words[0]
    diffs = []
    for i in range(1, WORDS_PER_FRAME):
        nib = (nibbles >> (30 - 2 * i)) & 0x03
        word = words[i]
        if nib == 0:
            continue
        if nib == 1:
            # 4 one byte differences
            diffs.extend(_packed(word, 0, 4, 8))
        elif nib == 2:
            # 2 two byte differences
            diffs.extend(_packed(word, 0, 2, 16))
        else:
            # 1 four byte difference
            diffs.append(_signed(word, 32))
    return diffs


# dnib -> (headerSize, diffCount, bitSize), keyed by nibble
_STEIM2_LAYOUT = {
    2: {1: (2, 1, 30), 2: (2, 2, 15), 3: (2, 3, 10)},
    3: {0: (2, 5, 6), 1: (2, 6, 5), 2: (4, 7, 4)},
}


def extractSteim2Diffs(words, frameIdx: int) -> list:
    """
    Differences held in one 64 byte Steim2 frame, given as 16 unsigned
    big endian words. Header words, nibble 00, are skipped.
    """
    nibbles = words[0]
    diffs = []
    for i in range(1, WORDS_PER_FRAME):
        nib = (nibbles >> (30 - 2 * i)) & 0x03
        word = words[i]
        if nib == 0:
            continue
        if nib == 1:
            diffs.extend(_packed(word, 0, 4, 8))
            continue
        dnib = (word >> 30) & 0x03
        layout = _STEIM2_LAYOUT[nib].get(dnib)
        if layout is None:
            raise SteimException(
                f"Steim2 Unknown case nibble={nib} dnib={dnib} for word {i} of frame {frameIdx}"
            )
        diffs.extend(_packed(word, *layout))
    return diffs


def _decode(dataBytes, numSamples: int, bias: int, extract, name: str) -> np.ndarray:
    # trailing partial frame is padding
    numFrames = len(dataBytes) // FRAME_SIZE
    if numSamples == 0:
        return np.zeros(0, dtype=np.int32)
    if numFrames == 0:
        raise SteimException(f"{name} data shorter than one frame: {len(dataBytes)} bytes")

    diffs = []
    xZero = 0
    xN = 0
    for frameIdx in range(numFrames):
        words = struct.unpack_from(">16I", dataBytes, frameIdx * FRAME_SIZE)
        if (words[0] >> 30) & 0x03 != 0:
            raise SteimException(
                f"nibble bytes must start with 00, but was {(words[0] >> 30) & 0x03:02b}"
            )
        if frameIdx == 0:
            # X(0) and X(n) are words 1 and 2 of the first frame
            xZero = _signed(words[1], 32)
            xN = _signed(words[2], 32)
        diffs.extend(extract(words, frameIdx))
        if len(diffs) >= numSamples:
            break

    if len(diffs) < numSamples:
        raise SteimException(
            f"Number of samples decompressed doesn't match number in header: {len(diffs)} != {numSamples}"
        )

    steps = np.array(diffs[:numSamples], dtype=np.int64)
    # if bias was zero, then the first sample is the X(0) constant
    steps[0] = xZero if bias == 0 else bias + steps[0]
    samples = np.cumsum(steps).astype(np.int32)

    if samples[-1] != xN:
        logger.warning(
            f"{name}: last sample {samples[-1]} doesn't match X(n) {xN}"
        )
    return samples


def decodeSteim1(dataBytes, numSamples: int, bias: int = 0) -> np.ndarray:
    """
    Decode the indicated number of samples from Steim1 compressed bytes.

    Being differencing compression, there may be an offset carried over
    from a previous data record, which can be given as bias. Otherwise leave
    it 0 and the X(0) constant is used for the first sample.

    Returns int32 array of length numSamples.
    Raises SteimException on a malformed frame.
    """
    return _decode(dataBytes, numSamples, bias, extractSteim1Diffs, "Steim1")


def decodeSteim2(dataBytes, numSamples: int, bias: int = 0) -> np.ndarray:
    """
    Decode the indicated number of samples from Steim2 compressed bytes.

    See decodeSteim1() for the meaning of bias.
    """
    return _decode(dataBytes, numSamples, bias, extractSteim2Diffs, "Steim2")
