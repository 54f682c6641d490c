import pytest

from x16chips.smc import SMC_VERSION_MAJOR, PowerOff, Smc, SmcHost


def command(smc, *values):
    for value in values:
        smc.i2c_data(value)


def test_version_read():
    smc = Smc()
    command(smc, 0x30)
    assert smc.read() == SMC_VERSION_MAJOR
    command(smc, 0x31)
    assert smc.read() == 0


def test_unknown_offset_reads_ff():
    smc = Smc()
    command(smc, 0x55)
    assert smc.read() == 0xFF


def test_default_op_is_keyboard_after_read():
    host = SmcHost()
    host.keyboard.extend([0x1C, 0x2D])
    smc = Smc(host)
    command(smc, 0x07)
    assert smc.read() == 0x1C
    assert smc.read() == 0x2D
    assert smc.read() == 0


def test_extra_bytes_are_dropped():
    smc = Smc()
    command(smc, 0x30, *([0x99] * 20))
    assert smc.read() == SMC_VERSION_MAJOR


def test_mouse_packet():
    host = SmcHost()
    host.mouse.extend([1, 2, 3])
    smc = Smc(host)
    results = []
    for _ in range(3):
        command(smc, 0x21)
        results.append(smc.read())
    assert results == [1, 2, 3]
    command(smc, 0x21)
    assert smc.read() == 0


def test_mouse_packet_needs_four_bytes_for_wheel_mouse():
    host = SmcHost(mouse_device_id=3)
    host.mouse.extend([1, 2, 3])
    smc = Smc(host)
    command(smc, 0x21)
    assert smc.read() == 0
    assert host.mouse_count() == 3


def test_keyboard_then_mouse_op():
    host = SmcHost()
    host.keyboard.append(0x11)
    host.mouse.extend([4, 5, 6])
    smc = Smc(host)
    command(smc, 0x40, 0x43)
    smc.write()
    assert smc.default_read_op == 0x43
    assert smc.read() == 0x11
    assert [smc.read() for _ in range(3)] == [4, 5, 6]
    assert smc.default_read_state == 0


def test_power_off_raises():
    smc = Smc()
    command(smc, 1, 0)
    with pytest.raises(PowerOff):
        smc.write()


def test_reset_requests():
    smc = Smc()
    command(smc, 1, 1)
    smc.write()
    assert smc.requested_reset
    other = Smc()
    command(other, 2, 0)
    other.write()
    assert other.requested_reset


def test_nmi_button():
    host = SmcHost()
    smc = Smc(host)
    command(smc, 3, 0)
    smc.write()
    assert host.nmi_count == 1


def test_activity_led_threshold():
    smc = Smc()
    command(smc, 5, 128)
    smc.write()
    assert smc.activity_led == 255
    command(smc, 5, 127)
    smc.write()
    assert smc.activity_led == 0


def test_mouse_device_id_round_trip():
    host = SmcHost()
    smc = Smc(host)
    command(smc, 0x20, 4)
    smc.write()
    command(smc, 0x22)
    assert smc.read() == 4


def test_power_long_press_reported_once():
    host = SmcHost(power_long_press=True)
    smc = Smc(host)
    command(smc, 0x09)
    assert smc.read() == 1
    command(smc, 0x09)
    assert smc.read() == 0