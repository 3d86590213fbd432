"""
Philip Crotwell
University of South Carolina, 2022
http://www.seis.sc.edu

FDSN source identifiers, the compact identifier carried by each record,
and canonicalization to network, station, location and channel.
"""

import re
from typing import Union

FDSN_PREFIX = "FDSN:"
"""const for fdsn prefix for source ids, 'FDSN:'. Note includes colon."""

SEP = "_"
"""const default separator. """

NET_VALID = re.compile(r"[A-Z\d]{1,8}")
"Regular expression for network code"
STATION_VALID = re.compile(r"[A-Z\d-]{1,8}")
"Regular expression for station code"
LOCATION_VALID = re.compile(r"[A-Z\d-]{0,8}")
"Regular expression for location code"
SOURCE_SUBSOURCE_VALID = re.compile(r"[A-Z\d]+")
"Regular expression for source and subsource codes"


class FDSNSourceId:
    """
    A FDSN Source Id for a channel.

    Defined by the FDSN,
    http://docs.fdsn.org/projects/source-identifiers/en/v1.0.
    """

    networkCode: str
    "Network code, 1-8 chars."
    stationCode: str
    "Station code, 1-8 chars."
    locationCode: str
    "Location code, 0-8 chars."
    bandCode: str
    "Band code, depends on sample rate."
    sourceCode: str
    "Source code, describes the instrument and data type."
    subsourceCode: str
    "Subsource code, describes component of instrument, often orientation."

    def __init__(
        self,
        networkCode: str,
        stationCode: str,
        locationCode: str,
        bandCode: str,
        sourceCode: str,
        subsourceCode: str,
    ):
        self.networkCode = networkCode
        self.stationCode = stationCode
        self.locationCode = locationCode
        self.bandCode = bandCode
        self.sourceCode = sourceCode
        self.subsourceCode = subsourceCode

    @staticmethod
    def parse(sid: str) -> "FDSNSourceId":
        """
        Parse a FDSN Source Id string, like FDSN:CO_BIRD_00_H_H_Z into its
        constituant parts.
        """
        if not sid.startswith(FDSN_PREFIX):
            raise FDSNSourceIdException(f"sourceid must start with {FDSN_PREFIX}: {sid}")
        items = sid[len(FDSN_PREFIX):].split(SEP)
        if len(items) != 6:
            raise FDSNSourceIdException(
                f"FDSN sourceid must have 6 items for channel separated by '{SEP}': {sid}"
            )
        return FDSNSourceId(*items)

    @staticmethod
    def fromNslc(net: str, sta: str, loc: str, channelCode: str) -> "FDSNSourceId":
        """
        Create a FDSN Source Id from an older seed-style nslc, network, station
        location, channel.
        """
        if len(channelCode) == 3:
            band = channelCode[0]
            source = channelCode[1]
            subsource = channelCode[2]
        else:
            b_s_ss = r"(\w)_(\w+)_(\w*)"
            match = re.fullmatch(b_s_ss, channelCode)
            if match:
                band = match[1]
                source = match[2]
                subsource = match[3]
            else:
                raise FDSNSourceIdException(
                    f"channel code must be length 3 or have 3 items separated by '{SEP}', first len 1, last may be missing: {channelCode}"
                )
        return FDSNSourceId(net, sta, loc, band, source, subsource)

    def validate(self) -> (bool, Union[str, None]):
        """
        Validates a source id, primarily for length limitations.

        Returns a tuple of either (True, None) or (False, <reason>)
        """
        if not NET_VALID.fullmatch(self.networkCode):
            return (False, f"Network code must be 1-8 chars A-Z and 0-9, {self.networkCode}")
        if not STATION_VALID.fullmatch(self.stationCode):
            return (False, f"Station code must be 1-8 chars A-Z, 0-9 and -, {self.stationCode}")
        if not LOCATION_VALID.fullmatch(self.locationCode):
            return (False, f"Location code must be 0-8 chars A-Z, 0-9 and -, {self.locationCode}")
        if not SOURCE_SUBSOURCE_VALID.fullmatch(self.sourceCode):
            return (False, f"SourceCode code allowed chars only A-Z and 0-9, {self.sourceCode}")
        # band and subsource codes allowed to be empty
        if len(self.subsourceCode) > 0 and not SOURCE_SUBSOURCE_VALID.fullmatch(self.subsourceCode):
            return (False, f"SubsourceCode code allowed chars only A-Z and 0-9, {self.subsourceCode}")
        return (True, None)

    def shortChannelCode(self) -> str:
        """
        Convert the channel part of the source id into an older seed-style
        channel code.

        If the band, source and subsource are single characters, then a 3
        char channel code will be created, like BHZ. But if any are larger,
        then a longer string with separators will be created, like B_AA_QW
        """
        if (
            len(self.bandCode) == 1
            and len(self.sourceCode) == 1
            and len(self.subsourceCode) == 1
        ):
            return f"{self.bandCode}{self.sourceCode}{self.subsourceCode}"
        return f"{self.bandCode}{SEP}{self.sourceCode}{SEP}{self.subsourceCode}"

    def asNslc(self) -> "NslcId":
        return NslcId(
            self.networkCode, self.stationCode, self.locationCode, self.shortChannelCode()
        )

    def __str__(self) -> str:
        return f"{FDSN_PREFIX}{self.networkCode}{SEP}{self.stationCode}{SEP}{self.locationCode}{SEP}{self.bandCode}{SEP}{self.sourceCode}{SEP}{self.subsourceCode}"

    def __eq__(self, other: object, /) -> bool:
        if not isinstance(other, self.__class__):
            return False
        return str(self) == str(other)

    def __hash__(self):
        return hash(str(self))


class NslcId:
    """
    Older style NSLC SEED Id, network, station, location and channel.
    """

    networkCode: str
    stationCode: str
    locationCode: str
    channelCode: str

    def __init__(self, net: str, sta: str, loc: str, chan: str):
        self.networkCode = net
        self.stationCode = sta
        self.locationCode = loc
        self.channelCode = chan

    def codes(self, sep="_") -> str:
        return f"{self.networkCode}{sep}{self.stationCode}{sep}{self.locationCode}{sep}{self.channelCode}"

    def __str__(self) -> str:
        return self.codes()

    def __eq__(self, other: object, /) -> bool:
        if not isinstance(other, self.__class__):
            return False
        return str(self) == str(other)

    def __hash__(self):
        return hash(str(self))


def nslc2sid(net: str, sta: str, loc: str, chan: str) -> str:
    """
    Compact identifier for seed-style codes, like FDSN:IU_ANMO_00_B_H_Z
    for IU ANMO 00 BHZ. Codes are trimmed first. A channel that is not
    3 chars is kept as is.
    """
    net = net.strip()
    sta = sta.strip()
    loc = loc.strip()
    chan = chan.strip()
    if len(chan) == 3:
        chan = f"{chan[0]}{SEP}{chan[1]}{SEP}{chan[2]}"
    return f"{FDSN_PREFIX}{net}{SEP}{sta}{SEP}{loc}{SEP}{chan}"


def sid2nslc(sid: str) -> NslcId:
    """
    Canonicalize a compact identifier into network, station, location and
    channel.

    Accepts FDSN:NET_STA_LOC_B_S_SS, where the band, source and subsource
    collapse into a 3 char channel when each is a single char, and the
    shorter FDSN:NET_STA_LOC_CHAN. Fields are returned trimmed.
    """
    if not sid.startswith(FDSN_PREFIX):
        raise FDSNSourceIdException(f"sourceid must start with {FDSN_PREFIX}: {sid}")
    items = sid[len(FDSN_PREFIX):].split(SEP)
    if len(items) == 6:
        return FDSNSourceId(*[i.strip() for i in items]).asNslc()
    if len(items) == 4:
        return NslcId(*[i.strip() for i in items])
    raise FDSNSourceIdException(
        f"sourceid must have 6 or 4 items separated by '{SEP}': {sid}"
    )


class FDSNSourceIdException(Exception):
    pass
