"""Tests for configuration parsing and validation."""

from __future__ import annotations

import pytest

from udpbalancer.address import Address
from udpbalancer.config import RelayConfig, load_config, parse_config
from udpbalancer.errors import ConfigError

BASIC = """\
listen 0.0.0.0:12201
upstream 10.0.0.1:12201
upstream 10.0.0.2:12202
"""


class TestParseConfig:
    """Tests for parse_config."""

    def test_parses_listen_and_upstreams(self):
        config = parse_config(BASIC)

        assert config.listen == Address("0.0.0.0", 12201)
        assert config.upstreams == (Address("10.0.0.1", 12201), Address("10.0.0.2", 12202))
        assert config.handle_gelf is False
        assert config.send_buffer is None
        assert config.recv_buffer is None

    def test_upstream_order_is_preserved(self):
        text = "upstream 10.0.0.3:1\nlisten 127.0.0.1:9\nupstream 10.0.0.1:1\nupstream 10.0.0.2:1\n"
        config = parse_config(text)

        assert [u.host for u in config.upstreams] == ["10.0.0.3", "10.0.0.1", "10.0.0.2"]

    def test_handle_gelf(self):
        assert parse_config(BASIC + "handle-gelf\n").handle_gelf is True

    def test_blank_lines_and_whitespace(self):
        text = "\n   \n\tlisten\t127.0.0.1:9  \n\n  upstream   10.0.0.1:1\n"
        config = parse_config(text)

        assert config.listen == Address("127.0.0.1", 9)
        assert len(config.upstreams) == 1

    def test_later_listen_wins(self):
        config = parse_config("listen 127.0.0.1:1\nlisten 127.0.0.1:2\nupstream 10.0.0.1:1\n")
        assert config.listen.port == 2

    def test_more_than_256_upstreams(self):
        lines = ["listen 127.0.0.1:9"]
        lines += [f"upstream 10.0.{i // 256}.{i % 256}:1" for i in range(300)]
        config = parse_config("\n".join(lines))

        assert len(config.upstreams) == 300

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("1048576", 1048576),
            ("0x100000", 0x100000),
            ("0X10", 16),
            ("010", 8),
            ("+4096", 4096),
            ("+0x10", 16),
        ],
    )
    def test_buffer_sizes(self, value, expected):
        config = parse_config(BASIC + f"send-buffer {value}\nrecv-buffer {value}\n")

        assert config.send_buffer == expected
        assert config.recv_buffer == expected

    @pytest.mark.parametrize("value", ["0", "-1", "+", "++1", "abc", "12k", "0x", "09", "4294967296"])
    def test_invalid_send_buffer(self, value):
        with pytest.raises(ConfigError, match="Invalid send buffer value at line 4"):
            parse_config(BASIC + f"send-buffer {value}\n")

    def test_missing_recv_buffer_value(self):
        with pytest.raises(ConfigError, match="Invalid recv buffer value at line 4"):
            parse_config(BASIC + "recv-buffer\n")

    def test_unknown_keyword(self):
        with pytest.raises(ConfigError, match='Unknown keyword "backend" at line 2') as excinfo:
            parse_config("listen 127.0.0.1:1\nbackend 10.0.0.1:1\n")

        assert excinfo.value.line == 2

    def test_comments_are_not_directives(self):
        with pytest.raises(ConfigError, match="Unknown keyword"):
            parse_config("# relay\n" + BASIC)

    @pytest.mark.parametrize(
        "line",
        [
            "listen",
            "listen 127.0.0.1",
            "listen 127.0.0.1:99999",
            "listen localhost:80",
            "listen 127.0.0.1:80 extra",
        ],
    )
    def test_invalid_listen(self, line):
        with pytest.raises(ConfigError, match="Invalid listen directive at line 1"):
            parse_config(line + "\nupstream 10.0.0.1:1\n")

    def test_invalid_upstream(self):
        with pytest.raises(ConfigError, match="Invalid upstream directive at line 3"):
            parse_config(BASIC.replace("10.0.0.2:12202", "10.0.0.2:port"))

    def test_handle_gelf_takes_no_arguments(self):
        with pytest.raises(ConfigError):
            parse_config(BASIC + "handle-gelf yes\n")

    def test_missing_listen(self):
        with pytest.raises(ConfigError, match="No listen address defined"):
            parse_config("upstream 10.0.0.1:1\n")

    def test_missing_upstreams(self):
        with pytest.raises(ConfigError, match="No upstream addresses defined"):
            parse_config("listen 127.0.0.1:1\nhandle-gelf\n")

    def test_source_prefixes_message(self):
        with pytest.raises(ConfigError, match=r"^relay\.conf: Unknown keyword"):
            parse_config("bogus\n", source="relay.conf")


class TestRelayConfig:
    """Tests for RelayConfig validation."""

    def test_is_frozen(self, config):
        with pytest.raises(AttributeError):
            config.handle_gelf = True

    def test_upstreams_become_tuple(self):
        config = RelayConfig(listen=Address("127.0.0.1", 1), upstreams=[Address("10.0.0.1", 1)])
        assert isinstance(config.upstreams, tuple)

    def test_rejects_zero_buffer(self):
        with pytest.raises(ConfigError):
            RelayConfig(listen=Address("127.0.0.1", 1), upstreams=(Address("10.0.0.1", 1),), recv_buffer=0)

    def test_direct_construction_is_validated(self):
        with pytest.raises(ConfigError, match="No listen address defined"):
            RelayConfig(listen=None, upstreams=(Address("10.0.0.1", 1),))
        with pytest.raises(ConfigError, match="No upstream addresses defined"):
            RelayConfig(listen=Address("127.0.0.1", 1), upstreams=())


class TestLoadConfig:
    """Tests for load_config."""

    def test_reads_file(self, tmp_path):
        path = tmp_path / "udp-balancer.conf"
        path.write_text(BASIC + "handle-gelf\n")

        config = load_config(path)

        assert config.handle_gelf is True
        assert len(config.upstreams) == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Unable to open file"):
            load_config(tmp_path / "missing.conf")

    def test_errors_name_the_file(self, tmp_path):
        path = tmp_path / "bad.conf"
        path.write_text("listen nowhere\n")

        with pytest.raises(ConfigError, match="bad.conf: Invalid listen directive at line 1"):
            load_config(path)
