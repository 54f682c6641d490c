"""VERA SPI controller connected to an optional SD card."""

from __future__ import annotations

SPI_CLOCK_RATE_MHZ = 12.5
# Nine SPI clocks are closer to the hardware; ten allows for clock alignment.
TRANSFER_CLOCKS = 10


class SdCard:
    """A card on the SPI bus that answers every byte with an idle 0xFF."""

    def __init__(self) -> None:
        self.selected = False

    def select(self, selected: bool) -> None:
        self.selected = bool(selected)

    def handle(self, byte: int) -> int:
        return 0xFF


class VeraSpi:
    """The SPI data and control registers."""

    def __init__(self, sdcard: SdCard | None = None) -> None:
        self.sdcard = sdcard
        self._sending_byte = 0
        self._outcounter = 0.0
        self.reset()

    def reset(self) -> None:
        self.ss = False
        self.busy = False
        self.autotx = False
        self.received_byte = 0xFF

    def _start(self, byte: int) -> None:
        self._sending_byte = byte
        self.busy = True
        self._outcounter = 0.0

    def step(self, mhz: float, clocks: int) -> None:
        if not self.busy:
            return
        self._outcounter += clocks * SPI_CLOCK_RATE_MHZ / mhz
        if self._outcounter >= TRANSFER_CLOCKS:
            self.busy = False
            if self.sdcard is not None:
                self.received_byte = self.sdcard.handle(self._sending_byte) & 0xFF
            else:
                self.received_byte = 0xFF

    def read(self, reg: int) -> int:
        if reg == 0:
            if self.autotx and self.ss and not self.busy:
                # Auto-transmit sends 0xFF after every read.
                self._start(0xFF)
            return self.received_byte
        if reg == 1:
            return self.busy << 7 | self.autotx << 2 | self.ss
        return 0

    def write(self, reg: int, value: int) -> None:
        if reg == 0:
            if self.ss and not self.busy:
                self._start(value & 0xFF)
        elif reg == 1:
            selected = bool(value & 1)
            if self.ss != selected:
                self.ss = selected
                if selected and self.sdcard is not None:
                    self.sdcard.select(selected)
            self.autotx = bool(value & 4)