"""VERA PCM audio: a 4 KiB sample FIFO played back at a programmable rate."""

from __future__ import annotations

FIFO_SIZE = 4096
VOLUME_LUT = (0, 1, 2, 3, 4, 5, 6, 8, 11, 14, 18, 23, 30, 38, 49, 64)

CTRL_FIFO_FULL = 0x80
CTRL_FIFO_EMPTY = 0x40
ALMOST_EMPTY_THRESHOLD = 1024


def _int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def _scale(sample: int, volume: int) -> int:
    """Multiply by a volume step and divide by 64, truncating toward zero."""
    product = sample * volume
    quotient = -((-product) // 64) if product < 0 else product // 64
    return _int16(quotient)


class Pcm:
    """The PCM playback unit with its FIFO, control and rate registers."""

    def __init__(self) -> None:
        self._fifo = bytearray(FIFO_SIZE)
        self.loop = False
        self.reset()

    def __len__(self) -> int:
        """Number of bytes waiting in the FIFO."""
        return self._count

    def _fifo_reset(self) -> None:
        self._wridx = 0
        self._rdidx = 0
        self._count = 0

    def _fifo_restart(self) -> None:
        self._rdidx = 0
        self._count = self._wridx

    def _drop_fifo(self) -> None:
        self._count = 0
        self._rdidx = self._wridx

    def reset(self) -> None:
        self._fifo_reset()
        self.ctrl = 0
        self.rate = 0
        self._cur_l = 0
        self._cur_r = 0
        self._phase = 0

    def write_ctrl(self, value: int) -> None:
        if value & 0xC0 == 0xC0:
            self.loop = True
        else:
            self.loop = False
            if value & 0x80:
                self._fifo_reset()
        if value & 0x40:
            self._fifo_restart()
        self.ctrl = value & 0x3F

    def read_ctrl(self) -> int:
        result = self.ctrl
        if self._count == FIFO_SIZE - 1:
            result |= CTRL_FIFO_FULL
        if self._count == 0:
            result |= CTRL_FIFO_EMPTY
        return result

    def write_rate(self, value: int) -> None:
        value &= 0xFF
        self.rate = 256 - value if value > 128 else value

    def read_rate(self) -> int:
        return self.rate

    def write_fifo(self, value: int) -> None:
        if self._count < FIFO_SIZE - 1:
            self._fifo[self._wridx] = value & 0xFF
            self._wridx = (self._wridx + 1) % FIFO_SIZE
            self._count += 1

    def _read_fifo(self) -> int:
        if self._count == 0:
            return 0
        result = self._fifo[self._rdidx]
        self._rdidx = (self._rdidx + 1) % FIFO_SIZE
        self._count -= 1
        return result

    def is_fifo_almost_empty(self) -> bool:
        return self._count < ALMOST_EMPTY_THRESHOLD

    def _fetch(self) -> None:
        mode = (self.ctrl >> 4) & 3
        if mode == 0:  # mono 8-bit
            self._cur_l = _int16(self._read_fifo() << 8)
            self._cur_r = self._cur_l
        elif mode == 1:  # stereo 8-bit
            if self._count < 2:
                self._drop_fifo()
            else:
                self._cur_l = _int16(self._read_fifo() << 8)
                self._cur_r = _int16(self._read_fifo() << 8)
        elif mode == 2:  # mono 16-bit
            if self._count < 2:
                self._drop_fifo()
            else:
                low = self._read_fifo()
                self._cur_l = _int16(low | self._read_fifo() << 8)
                self._cur_r = self._cur_l
        else:  # stereo 16-bit
            if self._count < 4:
                self._drop_fifo()
            else:
                low = self._read_fifo()
                self._cur_l = _int16(low | self._read_fifo() << 8)
                low = self._read_fifo()
                self._cur_r = _int16(low | self._read_fifo() << 8)

    def render(self, num_samples: int) -> list[int]:
        """Render interleaved left/right 16-bit samples."""
        out: list[int] = []
        for _ in range(num_samples):
            old_phase = self._phase
            self._phase = (self._phase + self.rate) & 0xFF
            if (old_phase ^ self._phase) & 0x80:
                if self._count == 0:
                    self._cur_l = 0
                    self._cur_r = 0
                else:
                    self._fetch()
                    if self.loop and self._count == 0:
                        self._fifo_restart()
            volume = VOLUME_LUT[self.ctrl & 0xF]
            out.append(_scale(self._cur_l, volume))
            out.append(_scale(self._cur_r, volume))
        return out