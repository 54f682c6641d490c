import pytest

from x16chips.pcm import FIFO_SIZE, Pcm


@pytest.fixture
def pcm():
    unit = Pcm()
    unit.write_rate(128)
    return unit


def test_empty_fifo_flag_after_reset():
    unit = Pcm()
    assert unit.read_ctrl() & 0x40
    assert not unit.read_ctrl() & 0x80
    assert len(unit) == 0


def test_fifo_full_flag_and_overflow_ignored():
    unit = Pcm()
    for _ in range(FIFO_SIZE + 10):
        unit.write_fifo(0x11)
    assert len(unit) == FIFO_SIZE - 1
    assert unit.read_ctrl() & 0x80
    assert not unit.read_ctrl() & 0x40


def test_almost_empty_threshold():
    unit = Pcm()
    for _ in range(1023):
        unit.write_fifo(0)
    assert unit.is_fifo_almost_empty()
    unit.write_fifo(0)
    assert not unit.is_fifo_almost_empty()


def test_rate_mirrors_above_128():
    unit = Pcm()
    unit.write_rate(200)
    assert unit.read_rate() == 256 - 200
    unit.write_rate(128)
    assert unit.read_rate() == 128
    unit.write_rate(5)
    assert unit.read_rate() == 5


def test_ctrl_reset_bit_clears_fifo():
    unit = Pcm()
    unit.write_fifo(1)
    unit.write_fifo(2)
    unit.write_ctrl(0x80 | 0x2A)
    assert len(unit) == 0
    assert unit.read_ctrl() == 0x2A | 0x40


def test_mono_8bit_playback(pcm):
    pcm.write_ctrl(0x0F)
    pcm.write_fifo(0x01)
    pcm.write_fifo(0x02)
    assert pcm.render(2) == [0x01 << 8, 0x01 << 8, 0x02 << 8, 0x02 << 8]
    assert pcm.render(1) == [0, 0]


def test_mono_8bit_negative(pcm):
    pcm.write_ctrl(0x0F)
    pcm.write_fifo(0xFF)
    assert pcm.render(1) == [-(1 << 8), -(1 << 8)]


def test_stereo_16bit_playback(pcm):
    pcm.write_ctrl(0x3F)
    for byte in (0x34, 0x12, 0x78, 0x56):
        pcm.write_fifo(byte)
    assert pcm.render(1) == [0x1234, 0x5678]
    assert len(pcm) == 0


def test_stereo_8bit_short_fifo_is_dropped(pcm):
    pcm.write_ctrl(0x1F)
    pcm.write_fifo(0x40)
    assert pcm.render(1) == [0, 0]
    assert len(pcm) == 0
    assert pcm.read_ctrl() & 0x40


def test_zero_volume_is_silent(pcm):
    pcm.write_ctrl(0x00)
    for byte in (0x7F, 0x10, 0x20):
        pcm.write_fifo(byte)
    assert pcm.render(3) == [0] * 6


def test_loop_replays_fifo(pcm):
    pcm.write_fifo(0x10)
    pcm.write_ctrl(0xCF)
    assert pcm.loop
    assert pcm.render(3) == [0x10 << 8] * 6


def test_render_length_and_rate_zero_holds_silence():
    unit = Pcm()
    unit.write_ctrl(0x0F)
    unit.write_fifo(0x33)
    assert unit.render(5) == [0] * 10
    assert len(unit) == 1