"""System management controller reached over I2C."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

SMC_VERSION_MAJOR = 47
SMC_VERSION_MINOR = 0
SMC_VERSION_PATCH = 0

I2C_DATA_LEN = 16
DEFAULT_READ_OP = 0x41


class PowerOff(Exception):
    """Raised when the machine is told to power off."""


@dataclass
class SmcHost:
    """The keyboard and mouse buffers and machine lines the SMC talks to."""

    keyboard: deque = field(default_factory=deque)
    mouse: deque = field(default_factory=deque)
    mouse_device_id: int = 0
    power_long_press: bool = False
    nmi_count: int = 0

    def keyboard_next(self) -> int:
        return self.keyboard.popleft() if self.keyboard else 0

    def mouse_count(self) -> int:
        return len(self.mouse)

    def mouse_next(self) -> int:
        return self.mouse.popleft() if self.mouse else 0

    def nmi(self) -> None:
        self.nmi_count += 1


class Smc:
    """Command and response handling of the SMC."""

    def __init__(self, host: SmcHost | None = None) -> None:
        self.host = host if host is not None else SmcHost()
        self.default_read_op = DEFAULT_READ_OP
        self.default_read_state = 0
        self.activity_led = 0
        self.mouse_byte_count = 0
        self.requested_reset = False
        self._data = bytearray(I2C_DATA_LEN)
        self._pos = 0

    def i2c_data(self, value: int) -> None:
        if self._pos < I2C_DATA_LEN:
            self._data[self._pos] = value & 0xFF
            self._pos += 1

    def _finish(self) -> None:
        self._data[0] = self.default_read_op
        self._pos = 0

    def _read_mouse(self) -> int:
        packet_size = 4 if self.host.mouse_device_id in (3, 4) else 3
        if self.mouse_byte_count == 0 and self.host.mouse_count() >= packet_size:
            self.mouse_byte_count += 1
            return self.host.mouse_next()
        if self.mouse_byte_count > 0:
            self.mouse_byte_count += 1
            if self.mouse_byte_count == packet_size:
                self.mouse_byte_count = 0
                self.default_read_state = 0
            return self.host.mouse_next()
        # No complete packet available.
        self.mouse_byte_count = 0
        self.default_read_state = 0
        return 0x00

    def read(self) -> int:
        op = self._data[0]
        if op == 0x43 and self.default_read_state == 0:
            self.default_read_state = 1
            result = self.host.keyboard_next()
        elif op in (0x43, 0x42, 0x21):
            result = self._read_mouse()
        elif op in (0x41, 0x07):
            if op == 0x41:
                self.default_read_state = 0
            result = self.host.keyboard_next()
        elif op == 0x09:
            result = 1 if self.host.power_long_press else 0
            self.host.power_long_press = False
        elif op == 0x22:
            result = self.host.mouse_device_id
        elif op == 0x30:
            result = SMC_VERSION_MAJOR
        elif op == 0x31:
            result = SMC_VERSION_MINOR
        elif op == 0x32:
            result = SMC_VERSION_PATCH
        else:
            result = 0xFF
        self._finish()
        return result & 0xFF

    def write(self) -> None:
        op, arg = self._data[0], self._data[1]
        if op == 1:
            if arg == 0:
                raise PowerOff("SMC power off")
            if arg == 1:
                self.requested_reset = True
        elif op == 2:
            if arg == 0:
                self.requested_reset = True
        elif op == 3:
            if arg == 0:
                self.host.nmi()
        elif op == 5:
            self.activity_led = 255 if arg >= 128 else 0
        elif op == 0x20:
            self.host.mouse_device_id = arg
        elif op == 0x40:
            self.default_read_op = arg
            self.default_read_state = 0
        self._finish()