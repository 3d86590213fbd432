import pytest
import numpy as np
from datetime import datetime, timezone

import mseedreader
from mseedreader import seedcodec
from mseedreader.decoder import MS_GENERROR, MS_INVALIDCRC, MS_NOTSEED

from conftest import START_NS, mseed2Record, mseed3Record, recordStart


def rampData(index, count=100):
    return np.arange(index * count, (index + 1) * count, dtype=np.int32) * 3 - 50


class TestRecordReader:

    def test_read_records(self, msfile):
        path = msfile(*[mseed2Record(rampData(i), starttime=recordStart(i), seq=i + 1) for i in range(3)])
        offsets = []
        with mseedreader.RecordReader(path) as reader:
            assert reader.filename() == str(path)
            for i, rec in enumerate(reader):
                offsets.append(rec.offset)
                assert rec.sid == "FDSN:XX_TEST_00_H_H_Z"
                assert rec.formatversion == 2
                assert rec.reclen == 512
                assert rec.samplecnt == 100
                assert rec.numsamples == 100
                assert rec.samprate == 20.0
                assert rec.encoding == seedcodec.INTEGER
                assert rec.encoding_name() == "32-bit integer"
                assert rec.pubversion == 2
                assert rec.sampletype == "i"
                assert rec.starttime_ns == recordStart(i)
                assert np.array_equal(rec.samples(), rampData(i))
            assert reader.last
        assert offsets == [0, 512, 1024]

    def test_identity(self, msfile):
        path = msfile(mseed2Record(rampData(0), net="CO", sta="JSC", loc="", chan="LHZ"))
        with mseedreader.RecordReader(path) as reader:
            rec = reader.read_next()
            assert rec.sid == "FDSN:CO_JSC__L_H_Z"
            assert rec.network == "CO"
            assert rec.station == "JSC"
            assert rec.location == ""
            assert rec.channel == "LHZ"
            assert rec.id() == "CO_JSC__LHZ"
            ident = rec.identity()
            assert ident == ("CO", "JSC", "", "LHZ")

    def test_times_and_display(self, msfile):
        path = msfile(mseed2Record(rampData(0)))
        with mseedreader.RecordReader(path) as reader:
            rec = reader.read_next()
            assert rec.starttime() == datetime(2023, 6, 17, 4, 53, 54, 468600, tzinfo=timezone.utc)
            assert rec.endtime() == datetime(2023, 6, 17, 4, 53, 59, 418600, tzinfo=timezone.utc)
            assert rec.time_string() == "2023,168,04:53:54.468600000"
            assert str(rec) == "FDSN:XX_TEST_00_H_H_Z, 2, 512, 100 samples, 20.0 Hz, 2023,168,04:53:54.468600000"

    def test_quality_to_pubversion(self, msfile):
        path = msfile(
            mseed2Record(rampData(0), quality="R"),
            mseed2Record(rampData(1), quality="Q"),
            mseed2Record(rampData(2), quality="M"),
        )
        with mseedreader.RecordReader(path) as reader:
            assert [rec.pubversion for rec in reader] == [1, 3, 4]

    def test_blockette1001(self, msfile):
        path = msfile(mseed2Record(rampData(0), timeQuality=80, microseconds=12))
        with mseedreader.RecordReader(path) as reader:
            rec = reader.read_next()
            assert rec.starttime_ns == START_NS + 12000
            assert rec.extra_headers() == {"FDSN": {"Time": {"Quality": 80}}}
            assert rec.extra_header("/FDSN/Time/Quality") == 80
            assert rec.extra_header("/FDSN/Time/Correction") is None

    def test_time_correction(self, msfile):
        path = msfile(
            mseed2Record(rampData(0), timeCorr=10),
            mseed2Record(rampData(0), timeCorr=10, actFlag=0x02),
        )
        with mseedreader.RecordReader(path) as reader:
            assert reader.read_next().starttime_ns == START_NS + 1000000
            assert reader.read_next().starttime_ns == START_NS

    def test_steim1(self, msfile):
        data = np.array([1, 2, -10, 45, -999, 4008] + [129] * 94, dtype=np.int32)
        path = msfile(mseed2Record(data, encoding=seedcodec.STEIM1))
        with mseedreader.RecordReader(path) as reader:
            rec = reader.read_next()
            assert rec.encoding == seedcodec.STEIM1
            assert rec.sampletype == "i"
            assert np.array_equal(rec.samples(), data)

    def test_short_data(self, msfile):
        data = [1, -2, 300, -32768, 32767]
        path = msfile(mseed2Record(data, encoding=seedcodec.SHORT))
        with mseedreader.RecordReader(path) as reader:
            samples = reader.read_next().samples()
            assert samples.dtype == np.int32
            assert list(samples) == data

    def test_unpack_disabled(self, msfile):
        path = msfile(mseed2Record(rampData(0)))
        with mseedreader.RecordReader(path, unpack_data=False) as reader:
            rec = reader.read_next()
            assert rec.samplecnt == 100
            assert rec.numsamples == 0
            assert rec.sampletype is None
            assert len(rec.samples()) == 0

    def test_unpack_setter(self, msfile):
        path = msfile(mseed2Record(rampData(0)), mseed2Record(rampData(1), starttime=recordStart(1)))
        with mseedreader.RecordReader(path) as reader:
            reader.unpack_data(False)
            assert reader.read_next().numsamples == 0
            reader.unpack_data(True)
            reader.verbose(True)
            assert reader.read_next().numsamples == 100

    def test_mseed3(self, msfile):
        extra = '{"FDSN":{"Time":{"Quality":100}},"Other":[1,2]}'
        path = msfile(
            mseed3Record([1, 2, 3, 4], pubversion=3, extra=extra),
            mseed3Record([1.5, 2.5], encoding=seedcodec.DOUBLE, starttime=START_NS + 789),
        )
        with mseedreader.RecordReader(path, validate_crc=True) as reader:
            rec = reader.read_next()
            assert rec.formatversion == 3
            assert rec.sid == "FDSN:XX_TEST_00_H_H_Z"
            assert rec.pubversion == 3
            assert rec.reclen == 40 + 21 + len(extra) + 16
            assert rec.extra_header("/FDSN/Time/Quality") == 100
            assert rec.extra_header("/Other/1") == 2
            assert list(rec.samples()) == [1, 2, 3, 4]
            rec = reader.read_next()
            assert rec.sampletype == "d"
            assert rec.starttime_ns == START_NS + 789
            assert rec.time_string() == "2023,168,04:53:54.468600789"
            assert rec.extra_headers() == {}
            assert list(rec.samples()) == [1.5, 2.5]

    def test_text_record(self, msfile):
        path = msfile(mseed3Record("hello", encoding=seedcodec.ASCII, rate=0.0))
        with mseedreader.RecordReader(path) as reader:
            rec = reader.read_next()
            assert rec.sampletype == "t"
            assert rec.samples().tobytes() == b"hello"

    def test_crc(self, msfile):
        path = msfile(mseed3Record([1, 2, 3], badCrc=True))
        with mseedreader.RecordReader(path) as reader:
            assert reader.read_next().numsamples == 3
        with mseedreader.RecordReader(path, validate_crc=True) as reader:
            with pytest.raises(mseedreader.DecodeError) as excinfo:
                reader.read_next()
            assert excinfo.value.code == MS_INVALIDCRC

    def test_end_of_stream(self, msfile):
        path = msfile(mseed2Record(rampData(0)))
        reader = mseedreader.RecordReader(path)
        reader.read_next()
        with pytest.raises(mseedreader.EndOfStream):
            reader.read_next()
        with pytest.raises(mseedreader.EndOfStream):
            reader.read_next()
        reader.close()

    def test_not_seed(self, msfile):
        path = msfile(b"\xff" * 512)
        with mseedreader.RecordReader(path) as reader:
            with pytest.raises(mseedreader.DecodeError) as excinfo:
                reader.read_next()
            assert excinfo.value.code == MS_NOTSEED

    def test_missing_file(self, tmp_path):
        with mseedreader.RecordReader(tmp_path / "nosuchfile.mseed") as reader:
            with pytest.raises(mseedreader.DecodeError) as excinfo:
                reader.read_next()
            assert excinfo.value.code == MS_GENERROR

    def test_iteration_stops_after_error(self, msfile):
        path = msfile(mseed2Record(rampData(0)), b"\xff" * 512, mseed2Record(rampData(1)))
        reader = mseedreader.RecordReader(path)
        it = iter(reader)
        assert next(it).samplecnt == 100
        with pytest.raises(mseedreader.DecodeError):
            next(it)
        with pytest.raises(StopIteration):
            next(it)
        reader.close()

    def test_iteration_not_restartable(self, msfile):
        path = msfile(mseed2Record(rampData(0)), mseed2Record(rampData(1), starttime=recordStart(1)))
        with mseedreader.RecordReader(path) as reader:
            assert len([r.samplecnt for r in reader]) == 2
            assert len([r.samplecnt for r in reader]) == 0

    def test_stale_record(self, msfile):
        path = msfile(mseed2Record(rampData(0)), mseed2Record(rampData(1), starttime=recordStart(1)))
        reader = mseedreader.RecordReader(path)
        first = reader.read_next()
        assert first.samplecnt == 100
        second = reader.read_next()
        with pytest.raises(mseedreader.StaleRecordError):
            first.samplecnt
        with pytest.raises(mseedreader.InvariantViolation):
            first.samples()
        assert second.starttime_ns == recordStart(1)
        reader.close()
        with pytest.raises(mseedreader.StaleRecordError):
            second.sid
        assert repr(second) == "<Record (stale)>"

    def test_close(self, msfile):
        path = msfile(*[mseed2Record(rampData(i), starttime=recordStart(i)) for i in range(3)])
        # zero reads
        reader = mseedreader.RecordReader(path)
        reader.close()
        assert reader.closed
        # partial
        reader = mseedreader.RecordReader(path)
        reader.read_next()
        reader.close()
        # full, then closed twice
        reader = mseedreader.RecordReader(path)
        for rec in reader:
            pass
        reader.close()
        reader.close()
        with pytest.raises(mseedreader.InvariantViolation):
            reader.read_next()
