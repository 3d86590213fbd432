import sys

import numpy as np

from mseedreader import msview, seedcodec

from conftest import mseed2Record, mseed3Record, recordStart


class TestMSView:

    def test_records(self, msfile, monkeypatch, capsys):
        path = msfile(
            mseed2Record(np.arange(100, dtype=np.int32)),
            mseed2Record(np.arange(100, dtype=np.int32), starttime=recordStart(1)),
        )
        monkeypatch.setattr(sys, "argv", ["msview", str(path)])
        assert msview.main() == 0
        out = capsys.readouterr().out
        assert "FDSN:XX_TEST_00_H_H_Z, 2, 512, 100 samples, 20.0 Hz, 2023,168,04:53:54.468600000" in out
        assert "Total 200 samples in 2 records" in out

    def test_traces(self, msfile, monkeypatch, capsys):
        path = msfile(
            mseed2Record(np.arange(100, dtype=np.int32)),
            mseed2Record(np.arange(100, dtype=np.int32), starttime=recordStart(1)),
        )
        monkeypatch.setattr(sys, "argv", ["msview", "--traces", str(path)])
        assert msview.main() == 0
        out = capsys.readouterr().out
        assert "FDSN:XX_TEST_00_H_H_Z  version 2" in out
        assert "Total 200 samples in 1 traces" in out

    def test_details(self, msfile, monkeypatch, capsys):
        path = msfile(mseed3Record([1, 2, 3], extra='{"FDSN":{"Time":{"Quality":100}}}'))
        monkeypatch.setattr(sys, "argv", ["msview", "--crc", "--data", str(path)])
        assert msview.main() == 0
        out = capsys.readouterr().out
        assert "number of samples: 3" in out
        assert '"Quality": 100' in out

    def test_bad_file(self, msfile, monkeypatch, capsys):
        path = msfile(mseed3Record([1, 2, 3], badCrc=True))
        monkeypatch.setattr(sys, "argv", ["msview", "--crc", str(path)])
        assert msview.main() == 1

    def test_traces_text_data(self, msfile, monkeypatch, capsys):
        path = msfile(mseed3Record("hello", encoding=seedcodec.ASCII, rate=0.0))
        monkeypatch.setattr(sys, "argv", ["msview", "--traces", "--data", str(path)])
        assert msview.main() == 0
        out = capsys.readouterr().out
        assert "    hello" in out
        assert "Total 5 samples in 1 traces" in out
