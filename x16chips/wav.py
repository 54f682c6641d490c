"""Recording of rendered stereo audio into a 16-bit PCM WAV file."""

from __future__ import annotations

import struct
from enum import IntEnum
from typing import BinaryIO, Sequence

CHANNELS = 2
SAMPLE_BYTES = 2
FMT_CHUNK_SIZE = 24
DATA_CHUNK_SIZE = 8

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


def _pack_header(sample_rate: int, riff_size: int, data_size: int) -> bytes:
    block_align = SAMPLE_BYTES * CHANNELS
    return _HEADER.pack(
        b"RIFF", riff_size, b"WAVE",
        b"fmt ", 16, 1, CHANNELS, sample_rate, sample_rate * block_align,
        block_align, SAMPLE_BYTES * 8,
        b"data", data_size,
    )


class RecorderState(IntEnum):
    DISABLED = 0
    PAUSED = 1
    AUTOSTARTING = 2
    RECORDING = 3


class RecorderCommand(IntEnum):
    PAUSE = 0
    RECORD = 1
    AUTOSTART = 2


class WavRecorder:
    """Writes interleaved stereo samples to a WAV file while recording."""

    def __init__(self, sample_rate: int) -> None:
        self.sample_rate = sample_rate
        self.state = RecorderState.DISABLED
        self.path: str | None = None
        self._file: BinaryIO | None = None
        self._frames_written = 0

    def __enter__(self) -> WavRecorder:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def _begin(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
        self._frames_written = 0
        try:
            handle = open(self.path, "wb")
        except OSError:
            return
        try:
            handle.write(_pack_header(self.sample_rate, 4, 0))
        except OSError:
            handle.close()
            return
        self._file = handle

    def _end(self) -> None:
        if self._file is None:
            return
        data_size = SAMPLE_BYTES * CHANNELS * self._frames_written
        riff_size = 4 + FMT_CHUNK_SIZE + DATA_CHUNK_SIZE + data_size
        with self._file:
            self._file.seek(0)
            self._file.write(_pack_header(self.sample_rate, riff_size, data_size))
        self._file = None

    def _add(self, samples: Sequence[int]) -> None:
        if self._file is None:
            return
        frames = len(samples) // CHANNELS
        payload = struct.pack(f"<{frames * CHANNELS}h", *samples[: frames * CHANNELS])
        try:
            self._file.write(payload)
        except OSError:
            self._file.close()
            self._file = None
            return
        self._frames_written += frames

    def shutdown(self) -> None:
        if self.state is RecorderState.RECORDING:
            self._end()

    def process(self, samples: Sequence[int]) -> None:
        """Feed interleaved left/right samples."""
        if self.state is RecorderState.AUTOSTARTING:
            frames = len(samples) // CHANNELS
            if any(samples[:frames]):
                self.state = RecorderState.RECORDING
                self._begin()
        if self.state is RecorderState.RECORDING:
            self._add(samples)

    def set_command(self, command: RecorderCommand | int) -> None:
        if self.state is RecorderState.DISABLED:
            return
        command = RecorderCommand(command)
        if command is RecorderCommand.PAUSE:
            self.state = RecorderState.PAUSED
        elif command is RecorderCommand.RECORD:
            self.state = RecorderState.RECORDING
            self._begin()
        else:
            self.state = RecorderState.AUTOSTARTING

    def set_path(self, path: str | None) -> None:
        """Set the output file; a ",wait" or ",auto" suffix delays recording."""
        if self.state is RecorderState.RECORDING:
            self._end()
        self.path = None
        if path is None:
            self.state = RecorderState.DISABLED
            return
        if path.endswith(",wait"):
            self.path = path[:-5]
            self.state = RecorderState.PAUSED
        elif path.endswith(",auto"):
            self.path = path[:-5]
            self.state = RecorderState.AUTOSTARTING
        else:
            self.path = path
            self.state = RecorderState.RECORDING
            self._begin()