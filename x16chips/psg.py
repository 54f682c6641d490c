"""VERA programmable sound generator: 16 voices with four waveforms."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

NUM_CHANNELS = 16

VOLUME_LUT = (
    0, 4, 8, 12,
    16, 17, 18, 20, 21, 22, 23, 25, 26, 28, 30, 31,
    33, 35, 37, 40, 42, 45, 47, 50, 53, 56, 60, 63,
    67, 71, 75, 80, 85, 90, 95, 101, 107, 113, 120, 127,
    135, 143, 151, 160, 170, 180, 191, 202, 214, 227, 241, 255,
    270, 286, 303, 321, 341, 361, 382, 405, 429, 455, 482, 511,
)


def _int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


class Waveform(IntEnum):
    PULSE = 0
    SAWTOOTH = 1
    TRIANGLE = 2
    NOISE = 3


@dataclass
class Channel:
    """State of one PSG voice."""

    freq: int = 0
    volume: int = 0
    left: bool = False
    right: bool = False
    pw: int = 0
    waveform: Waveform = Waveform.PULSE
    noiseval: int = 0
    phase: int = 0

    def level(self) -> int:
        """The 6-bit raw output level for the current phase."""
        inverted_pw = (self.pw ^ 0x3F) & 0x3F
        if self.waveform is Waveform.PULSE:
            return 0 if (self.phase >> 10) > self.pw else 0x3F
        if self.waveform is Waveform.SAWTOOTH:
            return (self.phase >> 11) ^ inverted_pw
        if self.waveform is Waveform.TRIANGLE:
            if self.phase & 0x10000:
                ramp = ~(self.phase >> 10) & 0x3F
            else:
                ramp = (self.phase >> 10) & 0x3F
            return ramp ^ inverted_pw
        return self.noiseval


class Psg:
    """The sound generator with its shared noise LFSR."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.channels = [Channel() for _ in range(NUM_CHANNELS)]
        self._noise_state = 1

    def write_register(self, reg: int, value: int) -> None:
        reg &= 0x3F
        value &= 0xFF
        channel = self.channels[reg // 4]
        idx = reg & 3
        if idx == 0:
            channel.freq = (channel.freq & 0xFF00) | value
        elif idx == 1:
            channel.freq = (channel.freq & 0x00FF) | (value << 8)
        elif idx == 2:
            channel.right = bool(value & 0x80)
            channel.left = bool(value & 0x40)
            channel.volume = VOLUME_LUT[value & 0x3F]
        else:
            channel.pw = value & 0x3F
            channel.waveform = Waveform(value >> 6)

    def _step_noise(self) -> None:
        ns = self._noise_state
        bit = ((ns >> 1) ^ (ns >> 2) ^ (ns >> 4) ^ (ns >> 15)) & 1
        self._noise_state = ((ns << 1) | bit) & 0xFFFF

    def _render_sample(self) -> tuple[int, int]:
        left = 0
        right = 0
        for channel in self.channels:
            # Noise advances once per channel, as the hardware updates voices in sequence.
            self._step_noise()
            if channel.left or channel.right:
                new_phase = (channel.phase + channel.freq) & 0x1FFFF
            else:
                new_phase = 0
            if channel.phase & 0x10000 and not new_phase & 0x10000:
                channel.noiseval = (self._noise_state >> 1) & 0x3F
            channel.phase = new_phase

            signed = channel.level() ^ 0x20
            if signed & 0x20:
                signed = _int16(signed | 0xFFC0)
            value = _int16(signed * channel.volume)
            if channel.left:
                left = _int16(left + (value >> 3))
            if channel.right:
                right = _int16(right + (value >> 3))
        return left, right

    def render(self, num_samples: int) -> list[int]:
        """Render interleaved left/right 16-bit samples."""
        out: list[int] = []
        for _ in range(num_samples):
            out.extend(self._render_sample())
        return out