"""Commodore serial bus (IEC) device side, driven by the VIA lines."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

SERIAL_ATNIN_MASK = 1 << 3
SERIAL_CLOCKIN_MASK = 1 << 4
SERIAL_DATAIN_MASK = 1 << 5

DEFAULT_MHZ = 8

# Protocol states of the bus state machine.
IDLE = 0
ATN_WAIT_CLK_LOW = 99
WAIT_BYTE_START = 1
RECEIVE_BITS = 2
TALK_READY = 10
TALK_FETCH = 11
TALK_EOI_DELAY = 12
TALK_SEND_BITS = 13
TALK_BYTE_DONE = 14


@dataclass
class SerialLines:
    """Levels of the ATN, CLK and DATA lines (1 means released)."""

    atn: int = 0
    clk: int = 0
    data: int = 0


@dataclass
class IeeeBus:
    """A bus device that records commands and serves queued bytes."""

    outgoing: deque = field(default_factory=deque)
    received: bytearray = field(default_factory=bytearray)
    events: list = field(default_factory=list)

    def listen(self, byte: int) -> None:
        self.events.append(("listen", byte))

    def unlisten(self) -> None:
        self.events.append(("unlisten", None))

    def talk(self, byte: int) -> None:
        self.events.append(("talk", byte))

    def untalk(self) -> None:
        self.events.append(("untalk", None))

    def second(self, byte: int) -> None:
        self.events.append(("second", byte))

    def tksa(self, byte: int) -> None:
        self.events.append(("tksa", byte))

    def ciout(self, byte: int) -> None:
        self.received.append(byte & 0xFF)

    def acptr(self) -> tuple[int, bool]:
        """Return the next byte and whether it is the last one."""
        if not self.outgoing:
            return 0, True
        byte = self.outgoing.popleft() & 0xFF
        return byte, not self.outgoing


class SerialBus:
    """The bit-level protocol engine between the host lines and a device."""

    def __init__(self, device: IeeeBus | None = None, mhz: int = DEFAULT_MHZ) -> None:
        self.device = device if device is not None else IeeeBus()
        self.mhz = mhz
        self.inputs = SerialLines()
        self.outputs = SerialLines(clk=1, data=1)
        self.state = IDLE
        self.valid = False
        self.bit = 0
        self.byte = 0
        self.listening = False
        self.talking = False
        self.during_atn = False
        self.eoi = False
        self.file_not_found = False
        self.clocks_since_last_change = 0
        self._old = (False, False, False)

    def read_clk(self) -> bool:
        return bool(self.outputs.clk & self.inputs.clk)

    def read_data(self) -> bool:
        return bool(self.outputs.data & self.inputs.data)

    def _snapshot(self) -> tuple[bool, bool, bool]:
        return bool(self.inputs.atn), self.read_clk(), self.read_data()

    def step(self, clocks: int) -> None:
        if self._snapshot() == self._old:
            self._advance_timers(clocks)
        else:
            self._on_change()
        self._old = self._snapshot()

    def _advance_timers(self, clocks: int) -> None:
        out = self.outputs
        mhz = self.mhz
        self.clocks_since_last_change += clocks
        if (
            self.state == RECEIVE_BITS
            and self.valid
            and self.bit == 0
            and self.clocks_since_last_change > 200 * mhz
        ):
            if self.clocks_since_last_change < (200 + 60) * mhz:
                out.data = 0  # acknowledge EOI
                self.eoi = True
            else:
                out.data = 1
                self.clocks_since_last_change = 0

        elapsed = self.clocks_since_last_change
        if self.state == TALK_READY and elapsed > 60 * mhz:
            out.clk = 1
            self.state = TALK_FETCH
            self.clocks_since_last_change = 0
        elif self.state == TALK_FETCH and self.read_data() and not self.file_not_found:
            self.clocks_since_last_change = 0
            self.byte, self.eoi = self.device.acptr()
            self.bit = 0
            self.valid = True
            if self.eoi:
                self.state = TALK_EOI_DELAY
            else:
                out.clk = 0
                self.state = TALK_SEND_BITS
        elif self.state == TALK_EOI_DELAY and elapsed > 512 * mhz:
            self.clocks_since_last_change = 0
            out.clk = 0
            self.state = TALK_SEND_BITS
        elif self.state == TALK_SEND_BITS and elapsed > 60 * mhz:
            if self.valid:
                out.data = (self.byte >> self.bit) & 1
                out.clk = 1
                self.bit += 1
                if self.bit == 8:
                    self.state = TALK_BYTE_DONE
            else:
                out.clk = 0
            self.valid = not self.valid
            self.clocks_since_last_change = 0
        elif self.state == TALK_BYTE_DONE and elapsed > 60 * mhz:
            out.data = 1
            out.clk = 0
            self.state = TALK_READY
            self.clocks_since_last_change = 0

    def _on_change(self) -> None:
        out = self.outputs
        self.clocks_since_last_change = 0

        if not self.during_atn and self.inputs.atn:
            out.data = 0
            self.state = ATN_WAIT_CLK_LOW
            self.during_atn = True

        if self.state == ATN_WAIT_CLK_LOW:
            if not self.read_clk():
                self.state = WAIT_BYTE_START
        elif self.state == WAIT_BYTE_START:
            self._wait_byte_start()
        elif self.state == RECEIVE_BITS:
            self._receive()

    def _wait_byte_start(self) -> None:
        out = self.outputs
        if self.during_atn and not self.inputs.atn:
            out.data = 1
            out.clk = 1
            self.during_atn = False
            if self.listening:
                out.data = 0  # keep holding DATA to show presence
            elif self.talking:
                out.clk = 0
                self.state = TALK_READY
            else:
                self.state = IDLE
            return
        if self.read_clk():
            out.data = 1
            self.state = RECEIVE_BITS
            self.valid = True
            self.bit = 0
            self.byte = 0
            self.eoi = False

    def _receive(self) -> None:
        out = self.outputs
        if self.during_atn and not self.inputs.atn:
            out.data = 1
            out.clk = 1
            self.state = IDLE
            return
        if self.valid:
            if not self.read_clk():
                self.valid = False
            return
        if not self.read_clk():
            return
        self.byte |= int(self.read_data()) << self.bit
        self.valid = True
        self.bit += 1
        if self.bit == 8:
            if self.during_atn:
                self._dispatch_command(self.byte)
            else:
                self.device.ciout(self.byte)
            out.data = 0
            self.state = WAIT_BYTE_START

    def _dispatch_command(self, byte: int) -> None:
        group = byte & 0x60
        if group == 0x20:
            if byte == 0x3F:
                self.device.unlisten()
                self.listening = False
            else:
                self.device.listen(byte)
                self.listening = True
        elif group == 0x40:
            if byte == 0x5F:
                self.device.untalk()
                self.talking = False
            else:
                self.device.talk(byte)
                self.talking = True
        elif group == 0x60:
            if self.listening:
                self.device.second(byte)
            else:
                self.device.tksa(byte)