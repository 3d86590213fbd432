import mseedreader
import sys
import os


def readRecords(msfilename):
    with mseedreader.RecordReader(msfilename, validate_crc=True) as reader:
        for rec in reader:
            print(rec)
            quality = rec.extra_header("/FDSN/Time/Quality")
            if quality is not None:
                print(f"    timing quality: {quality}%")


def main():
    for a in sys.argv[1:]:
        if os.path.exists(a):
            readRecords(a)


if __name__ == "__main__":
    main()
