from .version import __version__

version = __version__
"Current version"

from .reader import (
    RecordReader,
    Record,
)
from .archive import (
    TraceArchive,
    TraceChannel,
    TraceSegment,
)
from .identity import (
    Identity,
    parseIdentity,
    calendarTime,
    timeString,
)
from .exceptions import (
    MSeedException,
    EndOfStream,
    DecodeError,
    InvariantViolation,
    StaleRecordError,
    ArchiveNotLoaded,
    CodecException,
    UnsupportedCompressionType,
)
from .decoder import (
    MS_ENDOFFILE,
    MS_NOERROR,
    MS_GENERROR,
    MS_NOTSEED,
    MS_WRONGLENGTH,
    MS_OUTOFRANGE,
    MS_UNKNOWNFORMAT,
    MS_STBADCOMPFLAG,
    MS_INVALIDCRC,
    MSF_UNPACKDATA,
    MSF_VALIDATECRC,
    errorString,
)
from .sourceid import (
    FDSN_PREFIX,
    FDSNSourceId,
    FDSNSourceIdException,
    NslcId,
    nslc2sid,
    sid2nslc,
)
from .nstime import (
    SEEDORDINAL,
    nstime2time,
    nstime2timestr,
)
from .seedcodec import (
    encodingName,
    STEIM1,
    STEIM2,
)

__all__ = [
    "RecordReader",
    "Record",
    "TraceArchive",
    "TraceChannel",
    "TraceSegment",
    "Identity",
    "parseIdentity",
    "calendarTime",
    "timeString",
    "MSeedException",
    "EndOfStream",
    "DecodeError",
    "InvariantViolation",
    "StaleRecordError",
    "ArchiveNotLoaded",
    "CodecException",
    "UnsupportedCompressionType",
    "MS_ENDOFFILE",
    "MS_NOERROR",
    "MS_GENERROR",
    "MS_NOTSEED",
    "MS_WRONGLENGTH",
    "MS_OUTOFRANGE",
    "MS_UNKNOWNFORMAT",
    "MS_STBADCOMPFLAG",
    "MS_INVALIDCRC",
    "MSF_UNPACKDATA",
    "MSF_VALIDATECRC",
    "errorString",
    "FDSN_PREFIX",
    "FDSNSourceId",
    "FDSNSourceIdException",
    "NslcId",
    "nslc2sid",
    "sid2nslc",
    "SEEDORDINAL",
    "nstime2time",
    "nstime2timestr",
    "encodingName",
    "STEIM1",
    "STEIM2",
    "version"
]
