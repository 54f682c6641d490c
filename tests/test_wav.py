import wave

import pytest

from x16chips.wav import RecorderCommand, RecorderState, WavRecorder

RATE = 48000


def read_frames(path):
    with wave.open(str(path), "rb") as handle:
        return (
            handle.getnchannels(),
            handle.getsampwidth(),
            handle.getframerate(),
            handle.readframes(handle.getnframes()),
        )


def test_record_round_trip(tmp_path):
    target = tmp_path / "out.wav"
    recorder = WavRecorder(RATE)
    recorder.set_path(str(target))
    assert recorder.state is RecorderState.RECORDING
    recorder.process([1, -1, 300, -300])
    recorder.shutdown()
    channels, width, rate, frames = read_frames(target)
    assert (channels, width, rate) == (2, 2, RATE)
    assert len(frames) == 8
    assert target.read_bytes()[:4] == b"RIFF"


def test_file_size_matches_samples(tmp_path):
    target = tmp_path / "size.wav"
    with WavRecorder(RATE) as recorder:
        recorder.set_path(str(target))
        recorder.process([5] * 20)
        recorder.process([6] * 10)
    assert target.stat().st_size == 44 + 2 * 30


def test_wait_suffix_pauses(tmp_path):
    target = tmp_path / "wait.wav"
    recorder = WavRecorder(RATE)
    recorder.set_path(str(target) + ",wait")
    assert recorder.state is RecorderState.PAUSED
    assert recorder.path == str(target)
    recorder.process([7, 7])
    assert not target.exists()
    recorder.set_command(RecorderCommand.RECORD)
    recorder.process([7, 7])
    recorder.shutdown()
    assert read_frames(target)[3] == b"\x07\x00\x07\x00"


def test_auto_suffix_waits_for_sound(tmp_path):
    target = tmp_path / "auto.wav"
    recorder = WavRecorder(RATE)
    recorder.set_path(str(target) + ",auto")
    assert recorder.state is RecorderState.AUTOSTARTING
    recorder.process([0, 0, 0, 0])
    assert not target.exists()
    recorder.process([9, 9, 0, 0])
    assert recorder.state is RecorderState.RECORDING
    recorder.shutdown()
    assert len(read_frames(target)[3]) == 8


def test_disabled_ignores_commands(tmp_path):
    recorder = WavRecorder(RATE)
    recorder.set_command(RecorderCommand.RECORD)
    assert recorder.state is RecorderState.DISABLED


def test_set_path_none_disables(tmp_path):
    recorder = WavRecorder(RATE)
    recorder.set_path(str(tmp_path / "x.wav,wait"))
    recorder.set_path(None)
    assert recorder.state is RecorderState.DISABLED
    assert recorder.path is None


def test_pause_and_autostart_commands(tmp_path):
    recorder = WavRecorder(RATE)
    recorder.set_path(str(tmp_path / "c.wav,wait"))
    recorder.set_command(RecorderCommand.AUTOSTART)
    assert recorder.state is RecorderState.AUTOSTARTING
    recorder.set_command(RecorderCommand.PAUSE)
    assert recorder.state is RecorderState.PAUSED


def test_unknown_command_rejected(tmp_path):
    recorder = WavRecorder(RATE)
    recorder.set_path(str(tmp_path / "u.wav,wait"))
    with pytest.raises(ValueError):
        recorder.set_command(9)