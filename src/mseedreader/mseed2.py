import struct
from collections import namedtuple

from .nstime import time2nstime
from .seedcodec import BIG_ENDIAN, LITTLE_ENDIAN


HEADER_SIZE = 48
MIN_RECORD_LENGTH = 128
MAX_RECORD_LENGTH = 65536

HEADER_PACK_FORMAT = "6scc5s2s3s2sHHBBBxHHhhBBBBiHH"

DATA_QUALITY_CODES = b"DRQM"

BTime = namedtuple("BTime", "year yday hour minute second tenthMilli")
Blockette1000 = namedtuple(
    "Blockette1000", "blocketteNum, nextOffset, encoding, byteorder, recLength"
)
Blockette100 = namedtuple("Blockette100", "blocketteNum, nextOffset, sampleRate")
Blockette1001 = namedtuple(
    "Blockette1001", "blocketteNum, nextOffset, timeQuality, microseconds, frameCount"
)
BlocketteUnknown = namedtuple("BlocketteUnknown", "blocketteNum, nextOffset")

# quality indicator to publication version
_PUBVERSION = {"R": 1, "D": 2, "Q": 3, "M": 4}


def isValidHeader(recordBytes) -> bool:
    """
    True if the bytes look like the start of a miniseed2 fixed header.
    """
    if len(recordBytes) < HEADER_SIZE:
        return False
    for b in recordBytes[0:6]:
        if not (48 <= b <= 57 or b == 32 or b == 0):
            return False
    return (
        recordBytes[6] in DATA_QUALITY_CODES
        and recordBytes[7] in (32, 0)
        and recordBytes[24] <= 23
        and recordBytes[25] <= 59
        and recordBytes[26] <= 60
    )


class MiniseedHeader:
    """
    Represents the fixed header section of a miniseed2 record, along with
    the values carried in blockettes 100, 1000 and 1001.
    """

    def __init__(
        self,
        network,
        station,
        location,
        channel,
        btime,
        numSamples,
        sampRateFactor=0,
        sampRateMult=0,
        byteorder=BIG_ENDIAN,
        actFlag=0,
        ioFlag=0,
        qualFlag=0,
        numBlockettes=0,
        timeCorr=0,
        dataOffset=0,
        blocketteOffset=0,
        sequence_number="",
        dataquality="D",
    ):
        self.sequence_number = sequence_number
        self.network = network
        self.station = station
        self.location = location
        self.channel = channel
        self.dataquality = dataquality
        self.btime = btime
        self.numSamples = numSamples
        self.sampRateFactor = sampRateFactor
        self.sampRateMult = sampRateMult
        self.byteorder = byteorder
        self.actFlag = actFlag
        self.ioFlag = ioFlag
        self.qualFlag = qualFlag
        self.numBlockettes = numBlockettes
        self.timeCorr = timeCorr
        self.dataOffset = dataOffset
        self.blocketteOffset = blocketteOffset
        # set from blockettes
        self.encoding = -1
        self.dataByteorder = byteorder
        self.recordLength = None
        self.b100SampleRate = None
        self.microseconds = 0

    @property
    def endianChar(self):
        return "<" if self.byteorder == LITTLE_ENDIAN else ">"

    @property
    def sampleRate(self) -> float:
        """
        Nominal sample rate (Hz), from blockette 100 if present, otherwise
        calculated from sampRateFactor and sampRateMult.
        """
        if self.b100SampleRate is not None:
            return self.b100SampleRate
        factor = self.sampRateFactor
        mult = self.sampRateMult
        if factor == 0 or mult == 0:
            return 0.0
        if factor > 0:
            if mult > 0:
                return 1.0 * factor * mult
            return -1.0 * factor / mult
        if mult > 0:
            return -1.0 * mult / factor
        return 1.0 / (factor * mult)

    @property
    def pubversion(self) -> int:
        return _PUBVERSION.get(self.dataquality, 0)

    def starttime_ns(self) -> int:
        """
        Start time as epoch nanoseconds, including blockette 1001
        microseconds and the time correction unless already applied.
        """
        bt = self.btime
        ns = time2nstime(
            bt.year, bt.yday, bt.hour, bt.minute, bt.second, bt.tenthMilli * 100000
        )
        ns += self.microseconds * 1000
        if self.timeCorr != 0 and not self.actFlag & 0x02:
            ns += self.timeCorr * 100000
        return ns

    def codes(self, sep="."):
        return "{n}{sep}{s}{sep}{l}{sep}{c}".format(
            sep=sep,
            n=self.network,
            s=self.station,
            l=self.location,
            c=self.channel,
        )


def guessByteOrder(recordBytes) -> int:
    """
    Byte order of a fixed header, from whether the year is sane when read
    big endian.
    """
    (year,) = struct.unpack(">H", recordBytes[20:22])
    if 1900 <= year <= 2100:
        return BIG_ENDIAN
    (year,) = struct.unpack("<H", recordBytes[20:22])
    if 1900 <= year <= 2100:
        return LITTLE_ENDIAN
    raise MiniseedException(
        f"unable to determine byte order from year bytes: {recordBytes[20]:d} {recordBytes[21]:d}"
    )


def unpackMiniseedHeader(recordBytes, byteorder=None) -> MiniseedHeader:
    if len(recordBytes) < HEADER_SIZE:
        raise MiniseedException(f"Not enough bytes for header: {len(recordBytes):d}")
    if byteorder is None:
        byteorder = guessByteOrder(recordBytes)
    endianChar = "<" if byteorder == LITTLE_ENDIAN else ">"
    (
        seq,
        qualityChar,
        _reserved,
        sta,
        loc,
        chan,
        net,
        year,
        yday,
        hour,
        minute,
        sec,
        tenthMilli,
        numSamples,
        sampRateFactor,
        sampRateMult,
        actFlag,
        ioFlag,
        qualFlag,
        numBlockettes,
        timeCorr,
        dataOffset,
        blocketteOffset,
    ) = struct.unpack(endianChar + HEADER_PACK_FORMAT, recordBytes[0:HEADER_SIZE])
    return MiniseedHeader(
        net.decode("ascii").strip(),
        sta.decode("ascii").strip(),
        loc.decode("ascii").strip(),
        chan.decode("ascii").strip(),
        BTime(year, yday, hour, minute, sec, tenthMilli),
        numSamples,
        sampRateFactor=sampRateFactor,
        sampRateMult=sampRateMult,
        byteorder=byteorder,
        actFlag=actFlag,
        ioFlag=ioFlag,
        qualFlag=qualFlag,
        numBlockettes=numBlockettes,
        timeCorr=timeCorr,
        dataOffset=dataOffset,
        blocketteOffset=blocketteOffset,
        sequence_number=seq.decode("ascii").strip(),
        dataquality=qualityChar.decode("ascii"),
    )


def unpackBlockette(recordBytes, offset, endianChar):
    blocketteNum, nextOffset = struct.unpack(
        endianChar + "HH", recordBytes[offset : offset + 4]
    )
    if blocketteNum == 1000:
        return Blockette1000(
            *struct.unpack(endianChar + "HHBBBx", recordBytes[offset : offset + 8])
        )
    if blocketteNum == 100:
        return Blockette100(
            *struct.unpack(endianChar + "HHfxxxx", recordBytes[offset : offset + 12])
        )
    if blocketteNum == 1001:
        return Blockette1001(
            *struct.unpack(endianChar + "HHBbxB", recordBytes[offset : offset + 8])
        )
    return BlocketteUnknown(blocketteNum, nextOffset)


def applyBlockettes(header, recordBytes):
    """
    Walk the blockette chain, setting encoding, byte order, record length,
    sample rate and microseconds on the header.

    recordBytes must hold at least the fixed header and all blockettes.
    Returns the list of blockettes.
    """
    blockettes = []
    nextBOffset = header.blocketteOffset if header.numBlockettes > 0 else 0
    seen = set()
    while nextBOffset > 0:
        if nextBOffset in seen or nextBOffset < HEADER_SIZE:
            raise MiniseedException(f"blockette chain loops or is out of bounds at {nextBOffset}")
        seen.add(nextBOffset)
        try:
            b = unpackBlockette(recordBytes, nextBOffset, header.endianChar)
        except struct.error as e:
            raise MiniseedException(
                f"Unable to unpack blockette at {nextBOffset}, codes: {header.codes()} {e}"
            ) from e
        blockettes.append(b)
        if isinstance(b, Blockette1000):
            header.encoding = b.encoding
            header.dataByteorder = b.byteorder
            if b.recLength < 7 or 2**b.recLength > MAX_RECORD_LENGTH:
                raise MiniseedException(
                    f"record length {b.recLength} from B1000 is not valid"
                )
            header.recordLength = 2**b.recLength
        elif isinstance(b, Blockette100):
            header.b100SampleRate = b.sampleRate
        elif isinstance(b, Blockette1001):
            header.microseconds = b.microseconds
        nextBOffset = b.nextOffset
    return blockettes


class MiniseedException(Exception):
    pass
