# sparkscope/channel/serial.py
from __future__ import annotations

import json
import logging
import threading
from typing import Any, Mapping, Optional

import serial
from serial import SerialException

from .base import Channel
from .errors import ChannelIOError, ChannelOpenError
from ._internal.rx_worker import ChannelReader


class SerialChannel(Channel):
    """
    Newline-delimited JSON channel implemented via pyserial.

    ``url`` is anything ``serial.serial_for_url`` accepts: a device name
    (``/dev/ttyUSB0``, ``COM5``), ``socket://host:port`` for the kernel-side
    TCP listener, or ``loop://`` for local testing. Inbound lines are
    delivered by a reader thread, one at a time, in arrival order.
    """

    PARAMS = {
        "url": {"type": "str", "required": True},
        "baudrate": {"type": "int", "default": 115200},
        "timeout": {"type": "float", "default": 0.05},
        "read_size": {"type": "int", "default": 4096},
        "max_line_bytes": {"type": "int", "default": 4 * 1024 * 1024},
    }

    def __init__(
        self,
        url: str,
        baudrate: int = 115200,
        timeout: float = 0.05,
        read_size: int = 4096,
        max_line_bytes: int = 4 * 1024 * 1024,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__()
        self.url = url
        self.baudrate = baudrate
        self.timeout = timeout
        self.read_size = read_size
        self.max_line_bytes = max_line_bytes
        self._log = logger or logging.getLogger(__name__)

        self.ser: Optional[serial.SerialBase] = None
        self._reader: Optional[ChannelReader] = None
        self._lock = threading.Lock()
        self._buf = b""

    @property
    def is_open(self) -> bool:
        ser = self.ser
        return ser is not None and ser.is_open

    def open(self) -> None:
        if self.ser is not None:
            return
        try:
            ser = serial.serial_for_url(
                self.url,
                baudrate=self.baudrate,
                timeout=self.timeout,
                write_timeout=self.timeout,
            )
        except (SerialException, ValueError) as e:
            raise ChannelOpenError(str(e)) from None

        with self._lock:
            self.ser = ser
            self._buf = b""
            self._reader = ChannelReader(self)
        self._reader.start()
        self._log.info("CHANNEL_OPEN url=%s", self.url)

    def close(self) -> None:
        self._shutdown("closed", join=True)

    def send(self, message: Mapping[str, Any]) -> None:
        ser = self.ser
        if ser is None:
            raise ChannelIOError("send while channel not open")

        data = json.dumps(dict(message), separators=(",", ":")).encode("utf-8") + b"\n"
        try:
            ser.write(data)
            ser.flush()
        except SerialException as e:
            self._shutdown(f"write failed: {e}", join=True)
            raise ChannelIOError(f"channel write failed: {e}") from None

    # ---------------- RX Pump ----------------
    def _pump_rx(self) -> bool:
        """Read once and deliver every complete line. Returns False once closed."""
        ser = self.ser
        if ser is None:
            return False

        try:
            chunk = ser.read(self.read_size)
        except SerialException as e:
            if self.ser is ser:
                self._log.warning("CHANNEL_READ_FAILED url=%s err=%s", self.url, e)
                self._shutdown(f"read failed: {e}", join=False)
            return False

        if chunk:
            self._buf += chunk

        while b"\n" in self._buf:
            line, self._buf = self._buf.split(b"\n", 1)
            line = line.strip()
            if not line:
                continue
            try:
                message = json.loads(line)
            except (json.JSONDecodeError, UnicodeDecodeError):
                self._log.warning("CHANNEL_BAD_LINE len=%d", len(line))
                continue
            self._deliver(message)

        if len(self._buf) > self.max_line_bytes:
            self._log.warning("CHANNEL_LINE_TOO_LONG dropped=%d", len(self._buf))
            self._buf = b""

        return True

    def _shutdown(self, reason: str, *, join: bool) -> None:
        with self._lock:
            ser, self.ser = self.ser, None
            reader, self._reader = self._reader, None
        if ser is None:
            return

        if reader is not None:
            reader.stop()
            if join and reader is not threading.current_thread() and reader.is_alive():
                reader.join(timeout=1.0)

        try:
            ser.close()
        except SerialException:
            self._log.exception("CHANNEL_CLOSE_FAILED url=%s", self.url)

        self._log.info("CHANNEL_CLOSED url=%s reason=%s", self.url, reason)
        self._closed(reason)
