from __future__ import annotations

import json

import pytest

import sparkscope.channel.serial as serial_mod
from sparkscope.channel.errors import ChannelIOError, ChannelOpenError


class FakeSerial:
    def __init__(self, url, baudrate, timeout, write_timeout):
        self.url = url
        self.baudrate = baudrate
        self.timeout = timeout
        self.write_timeout = write_timeout
        self.is_open = True

        self._read_chunks = []
        self._raise_on_read = None
        self._raise_on_write = None

        self.written = b""
        self.flush_called = 0
        self.close_called = 0

    def read(self, n: int) -> bytes:
        if self._raise_on_read is not None:
            raise self._raise_on_read
        if not self._read_chunks:
            return b""
        return self._read_chunks.pop(0)

    def write(self, data: bytes) -> int:
        if self._raise_on_write is not None:
            raise self._raise_on_write
        self.written += data
        return len(data)

    def flush(self) -> None:
        self.flush_called += 1

    def close(self) -> None:
        self.close_called += 1
        self.is_open = False


class IdleReader:
    """Stands in for the reader thread; tests drive _pump_rx() by hand."""
    def __init__(self, channel):
        self.channel = channel
        self.started = False
        self.stopped = False

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def is_alive(self):
        return False


@pytest.fixture
def fake_port(monkeypatch):
    created = {}

    def fake_for_url(url, baudrate, timeout, write_timeout):
        s = FakeSerial(url, baudrate, timeout, write_timeout)
        created["ser"] = s
        return s

    monkeypatch.setattr(serial_mod.serial, "serial_for_url", fake_for_url)
    monkeypatch.setattr(serial_mod, "ChannelReader", IdleReader)
    return created


def _opened(fake_port, **kwargs):
    ch = serial_mod.SerialChannel("socket://127.0.0.1:25826", **kwargs)
    inbox = []
    closes = []
    ch.on_message = inbox.append
    ch.on_close = closes.append
    ch.open()
    return ch, fake_port["ser"], inbox, closes


def test_open_uses_url_and_starts_reader(fake_port):
    ch, ser, _, _ = _opened(fake_port, baudrate=9600, timeout=0.1)

    assert ch.is_open is True
    assert ser.url == "socket://127.0.0.1:25826"
    assert ser.baudrate == 9600
    assert ser.write_timeout == 0.1
    assert ch._reader.started is True


def test_open_serial_exception_raises_channel_open_error(monkeypatch):
    def fake_for_url(*a, **k):
        raise serial_mod.SerialException("connection refused")

    monkeypatch.setattr(serial_mod.serial, "serial_for_url", fake_for_url)

    ch = serial_mod.SerialChannel("socket://127.0.0.1:1")
    with pytest.raises(ChannelOpenError):
        ch.open()
    assert ch.ser is None


def test_send_writes_one_json_line(fake_port):
    ch, ser, _, _ = _opened(fake_port)

    ch.send({"msgtype": "openfromfrontend"})

    assert ser.written == b'{"msgtype":"openfromfrontend"}\n'
    assert ser.flush_called == 1


def test_send_not_open_raises():
    ch = serial_mod.SerialChannel("loop://")
    with pytest.raises(ChannelIOError):
        ch.send({"msgtype": "x"})


def test_send_failure_closes_and_raises(fake_port):
    ch, ser, _, closes = _opened(fake_port)
    ser._raise_on_write = serial_mod.SerialException("broken pipe")

    with pytest.raises(ChannelIOError):
        ch.send({"msgtype": "x"})

    assert ch.ser is None
    assert ser.close_called == 1
    assert len(closes) == 1


def test_pump_delivers_complete_lines_across_chunks(fake_port):
    ch, ser, inbox, _ = _opened(fake_port)
    a = json.dumps({"msgtype": "fromscala", "msg": "{}"}).encode()
    ser._read_chunks = [a[:10], a[10:] + b"\n{\"msgtype\":", b"\"x\"}\n"]

    assert ch._pump_rx() is True
    assert inbox == []
    ch._pump_rx()
    ch._pump_rx()

    assert inbox == [{"msgtype": "fromscala", "msg": "{}"}, {"msgtype": "x"}]


def test_pump_skips_bad_lines(fake_port, caplog):
    ch, ser, inbox, _ = _opened(fake_port)
    ser._read_chunks = [b"garbage\n\n{\"msgtype\":\"ok\"}\n"]

    ch._pump_rx()

    assert inbox == [{"msgtype": "ok"}]
    assert any("CHANNEL_BAD_LINE" in r.getMessage() for r in caplog.records)


def test_pump_drops_oversized_partial_line(fake_port):
    ch, ser, inbox, _ = _opened(fake_port, max_line_bytes=8)
    ser._read_chunks = [b"x" * 20, b"{\"a\":1}\n"]

    ch._pump_rx()
    ch._pump_rx()

    assert inbox == [{"a": 1}]


def test_pump_read_failure_closes_channel(fake_port):
    ch, ser, _, closes = _opened(fake_port)
    ser._raise_on_read = serial_mod.SerialException("reset by peer")

    assert ch._pump_rx() is False
    assert ch.is_open is False
    assert closes and closes[0].startswith("read failed")


def test_close_is_idempotent_and_reports_once(fake_port):
    ch, ser, _, closes = _opened(fake_port)
    reader = ch._reader

    ch.close()
    ch.close()

    assert ser.close_called == 1
    assert reader.stopped is True
    assert closes == ["closed"]
    assert ch._pump_rx() is False
