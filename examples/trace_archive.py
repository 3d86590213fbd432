import mseedreader
import sys
import os


def printTraces(msfilename):
    with mseedreader.TraceArchive(msfilename) as archive:
        archive.load()
        for chan in archive.channels():
            print(f"{chan.identity().codes('.')} {chan.start_time()} to {chan.end_time()}")
            for seg in chan.segments():
                if seg.sampletype() == "t":
                    print(f"  {seg}  text: {seg.payload().decode('utf-8', 'replace')}")
                    continue
                data = seg.data_f64()
                if len(data) > 0:
                    print(f"  {seg}  mean: {data.mean():.3f}  min: {data.min()}  max: {data.max()}")
                else:
                    print(f"  {seg}  no data")


def main():
    for a in sys.argv[1:]:
        if os.path.exists(a):
            printTraces(a)


if __name__ == "__main__":
    main()
