import argparse
import logging
import os
import sys

from .archive import TraceArchive
from .exceptions import DecodeError
from .reader import RecordReader
from .seedcodec import SAMPLETYPE_TEXT
from .version import VERSION

logger = logging.getLogger(__name__)


def do_parseargs():
    parser = argparse.ArgumentParser(
        description="View records or merged traces of miniseed 2 and 3 files."
    )
    parser.add_argument(
        "-v", "--verbose", help="increase output verbosity", action="count", default=0
    )
    parser.add_argument(
        "--version", help="print version", action="version",
        version=f'%(prog)s, mseedreader version {VERSION}'
    )
    parser.add_argument(
        "--crc", help="validate miniseed3 CRC", action="store_true"
    )
    parser.add_argument(
        "--nounpack", help="do not decode samples", action="store_true"
    )
    parser.add_argument(
        "--traces", help="merge records and print traces and segments", action="store_true"
    )
    parser.add_argument("--data", help="print timeseries data", action="store_true")
    parser.add_argument(
        "msfiles", metavar="msfile", nargs="+", help="miniseed files to print"
    )
    return parser.parse_args()


def printRecords(msfile, args):
    numRecords = 0
    totSamples = 0
    with RecordReader(
        msfile,
        unpack_data=not args.nounpack,
        validate_crc=args.crc,
        verbose=args.verbose,
    ) as reader:
        for rec in reader:
            numRecords += 1
            totSamples += rec.samplecnt
            if args.verbose > 0 or args.data:
                print(rec.details(showData=args.data))
            else:
                print(rec)
    print(f"Total {totSamples} samples in {numRecords} records")


def printTraces(msfile, args):
    with TraceArchive(
        msfile,
        unpack_data=not args.nounpack,
        validate_crc=args.crc,
        verbose=args.verbose,
    ) as archive:
        archive.load()
        for chan in archive.channels():
            print(f"{chan.sid}  version {chan.pubversion()}")
            for seg in chan.segments():
                print(f"  {seg}")
                if not args.data or not seg.data_unpacked():
                    continue
                if seg.sampletype() == SAMPLETYPE_TEXT:
                    print(f"    {seg.payload().decode('utf-8', 'replace')}")
                else:
                    print(f"    {seg.data(seg.sampletype())}")
        print(f"Total {archive.numsamples()} samples in {archive.numtraces()} traces")


def do_view():
    args = do_parseargs()
    if args.verbose > 1:
        logging.basicConfig(level=logging.DEBUG)
    elif args.verbose > 0:
        logging.basicConfig(level=logging.INFO)
    else:
        logging.basicConfig(level=logging.WARNING)

    failed = 0
    for msfile in args.msfiles:
        try:
            if args.traces:
                printTraces(msfile, args)
            else:
                printRecords(msfile, args)
        except DecodeError as e:
            logger.error(f"{e}")
            failed += 1
    return 1 if failed > 0 else 0


def main():
    try:
        rv = do_view()
        sys.stdout.flush()
        return rv
    except BrokenPipeError:
        # Python flushes standard streams on exit; redirect remaining output
        # to devnull to avoid another BrokenPipeError at shutdown
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        sys.exit(1)  # Python exits with error code 1 on EPIPE


if __name__ == "__main__":
    sys.exit(main())
