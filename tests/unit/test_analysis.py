"""Tests for offline routing reports."""

from __future__ import annotations

import pytest

from udpbalancer.analysis import backend_distribution, load_samples, plot_distribution, route_payloads
from udpbalancer.hashing import hash8

MESSAGE_ID = bytes([1, 2, 3, 4, 5, 6, 7, 8])


def chunk(seq: int) -> bytes:
    return b"\x1e\x0f" + MESSAGE_ID + bytes([seq, 4]) + b"body"


PLAIN = b'{"version":"1.1"}'


class TestRoutePayloads:
    """Tests for route_payloads."""

    def test_one_row_per_payload(self, gelf_config):
        frame = route_payloads([PLAIN, chunk(0), b"short", PLAIN], gelf_config)

        assert list(frame.columns) == ["sequence", "length", "route", "backend_index", "backend"]
        assert list(frame["sequence"]) == [0, 1, 2, 3]
        assert list(frame["route"]) == ["round_robin", "affinity", "dropped", "round_robin"]

    def test_matches_relay_routing(self, gelf_config):
        frame = route_payloads([PLAIN, chunk(0), PLAIN, chunk(1), PLAIN], gelf_config)

        affinity = hash8(MESSAGE_ID) % 3
        assert list(frame["backend_index"]) == [0, affinity, 1, affinity, 2]

    def test_dropped_rows_have_no_backend(self, config):
        frame = route_payloads([b"x"], config)

        assert frame.loc[0, "backend_index"] == -1
        assert frame.loc[0, "backend"] is None

    def test_backend_labels(self, config):
        frame = route_payloads([PLAIN], config)
        assert frame.loc[0, "backend"] == "10.0.0.1:12201"


class TestBackendDistribution:
    """Tests for backend_distribution."""

    def test_counts_per_backend(self, gelf_config):
        frame = route_payloads([PLAIN] * 6 + [chunk(i) for i in range(4)], gelf_config)

        distribution = backend_distribution(frame, gelf_config)

        assert list(distribution["round_robin"]) == [2, 2, 2]
        assert distribution["affinity"].sum() == 4
        assert distribution.loc[hash8(MESSAGE_ID) % 3, "affinity"] == 4
        assert distribution["forwarded"].sum() == 10
        assert distribution["share"].sum() == pytest.approx(1.0)

    def test_lists_idle_backends(self, config):
        frame = route_payloads([PLAIN], config)

        distribution = backend_distribution(frame, config)

        assert list(distribution["backend"]) == ["10.0.0.1:12201", "10.0.0.2:12201", "10.0.0.3:12201"]
        assert list(distribution["forwarded"]) == [1, 0, 0]

    def test_all_dropped(self, config):
        frame = route_payloads([b"a", b"bb"], config)

        distribution = backend_distribution(frame, config)

        assert list(distribution["forwarded"]) == [0, 0, 0]
        assert list(distribution["share"]) == [0.0, 0.0, 0.0]


class TestLoadSamples:
    """Tests for load_samples."""

    def test_reads_hex_lines(self, tmp_path):
        path = tmp_path / "samples.hex"
        path.write_text("# captured on eth0\n\n1e 0f 01 02 03 04 05 06 07 08 00 02\n7b7d\n")

        assert load_samples(path) == [bytes.fromhex("1e0f0102030405060708 0002"), b"{}"]

    def test_rejects_invalid_hex(self, tmp_path):
        path = tmp_path / "samples.hex"
        path.write_text("7b7d\nnot hex\n")

        with pytest.raises(ValueError, match="line 2"):
            load_samples(path)


class TestPlotDistribution:
    """Tests for plot_distribution."""

    def test_writes_png(self, gelf_config, tmp_path):
        frame = route_payloads([PLAIN] * 3 + [chunk(0)], gelf_config)
        distribution = backend_distribution(frame, gelf_config)

        path = plot_distribution(distribution, tmp_path / "plots" / "distribution.png")

        assert path.exists()
        assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"
