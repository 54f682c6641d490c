import pytest

from x16chips.fx import (
    ADDR_PALETTE_START,
    ADDR_PSG_START,
    ADDR_SPRDATA_START,
    VERA_VERSION_MAJOR,
    AddressPort,
    FxUnit,
    VideoMemory,
)
from x16chips.layers import SpriteProperties
from x16chips.psg import VOLUME_LUT


def _ports():
    return [AddressPort(), AddressPort()]


def test_memory_write_read_masks_address():
    memory = VideoMemory()
    memory.write(0x20005, 0x7E)
    assert memory.read(5) == 0x7E
    assert memory[0x5] == 0x7E


def test_read_range_wraps_around_end():
    memory = VideoMemory()
    memory.write(0x1FFFF, 0x11)
    memory.write(0, 0x22)
    assert memory.read_range(0x1FFFF, 2) == bytes([0x11, 0x22])
    assert memory.read_range(0x1FFFE, 2)[1] == 0x11


def test_palette_window_updates_palette():
    memory = VideoMemory()
    memory.write(ADDR_PALETTE_START + 3, 0x12)
    assert memory.palette.raw[3] == 0x12
    assert memory.palette.dirty is True


def test_sprite_window_updates_sprite_properties():
    memory = VideoMemory()
    data = [0x10, 0x81, 0x20, 0x00, 0x30, 0x00, 0x0C, 0x53]
    for offset, byte in enumerate(data):
        memory.write(ADDR_SPRDATA_START + 8 + offset, byte)
    assert memory.sprites[1] == SpriteProperties.from_bytes(data)
    assert memory.sprite_data[1] == bytearray(data)


def test_psg_window_writes_register_after_audio_callback():
    calls = []
    memory = VideoMemory(on_audio=lambda: calls.append(True))
    memory.write(ADDR_PSG_START + 2, 0xFF)
    channel = memory.psg.channels[0]
    assert channel.left and channel.right
    assert channel.volume == VOLUME_LUT[0x3F]
    assert calls == [True]


def test_write_nibble_four_bit():
    memory = VideoMemory()
    memory.write(0x100, 0xAB)
    memory.write_nibble(0x100, True, 0x05, True, False)
    assert memory.read(0x100) == 0xA5
    memory.write_nibble(0x100, False, 0x50, True, False)
    assert memory.read(0x100) == 0x55


def test_write_nibble_transparent_skips_zero():
    memory = VideoMemory()
    memory.write(0x10, 0xAB)
    memory.write_nibble(0x10, True, 0xF0, True, True)
    assert memory.read(0x10) == 0xAB
    memory.write_nibble(0x10, False, 0, False, True)
    assert memory.read(0x10) == 0xAB
    memory.write_nibble(0x10, False, 0x33, False, True)
    assert memory.read(0x10) == 0x33


def test_cache_write_transparent_zero_is_skipped():
    memory = VideoMemory()
    memory.write(0x20, 0xAB)
    memory.cache_write(0x20, 0, 0, True)
    assert memory.read(0x20) == 0xAB


def test_reset_defaults():
    fx = FxUnit()
    fx.set_ctrl(0xFF)
    fx.reset()
    assert fx.x_position == 0x8000
    assert fx.y_position == 0x8000
    assert fx.affine_map_size == 2
    assert fx.addr1_mode == 0 and not fx.four_bit


def test_set_ctrl_decodes_all_bits():
    fx = FxUnit()
    fx.set_ctrl(0xFF)
    assert fx.addr1_mode == 3
    flags = (fx.four_bit, fx.hop16, fx.cache_byte_cycling, fx.cache_fill,
             fx.cache_write, fx.trans_writes)
    assert all(flags)
    fx.set_ctrl(0)
    assert fx.addr1_mode == 0
    assert not any((fx.four_bit, fx.hop16, fx.cache_byte_cycling, fx.cache_fill,
                    fx.cache_write, fx.trans_writes))


@pytest.mark.parametrize("value,size", [(0, 2), (1, 8), (2, 32), (3, 128)])
def test_affine_map_sizes(value, size):
    fx = FxUnit()
    fx.set_map_base(0x04 | value)
    assert fx.affine_map_size == size
    assert fx.affine_map_base == 0x04 << 9


def test_multiply_and_accumulate_round_trip():
    fx = FxUnit()
    fx.cache[:] = bytes([0xFF, 0xFF, 0x02, 0x00])
    assert fx.multiply() == -2
    fx.accumulate()
    assert fx.accumulator == fx.multiply()
    fx.subtract = True
    fx.accumulate()
    assert fx.accumulator == 0


def test_set_mult_accumulates_and_resets():
    fx = FxUnit()
    fx.cache[:] = bytes([0x03, 0x00, 0x05, 0x00])
    fx.set_mult(0x40)
    assert fx.accumulator == fx.multiply()
    fx.set_mult(0x80)
    assert fx.accumulator == 0
    fx.set_mult(0x0C | 0x10)
    assert fx.cache_byte_index == 3 and fx.multiplier


def test_next_address_returns_old_and_advances():
    fx = FxUnit()
    ports = _ports()
    ports[0].address = 0x100
    ports[0].inc = 2
    assert fx.next_address(ports, 0, False) == 0x100
    assert ports[0].address == 0x101


@pytest.mark.parametrize("step", range(1, 16))
def test_odd_increment_is_negated_even(step):
    fx = FxUnit()
    up, down = _ports(), _ports()
    up[0].address = down[0].address = 0x10000
    up[0].inc = step * 2
    down[0].inc = step * 2 + 1
    fx.next_address(up, 0, True)
    fx.next_address(down, 0, True)
    assert up[0].address - 0x10000 == 0x10000 - down[0].address
    assert up[0].address > 0x10000


def test_nibble_increment_in_four_bit_mode():
    fx = FxUnit()
    fx.set_ctrl(0x04)
    ports = _ports()
    ports[0].address = 0x40
    ports[0].nibble_incr = True
    fx.next_address(ports, 0, False)
    assert ports[0].address == 0x40 and ports[0].nibble_bit
    fx.next_address(ports, 0, False)
    assert ports[0].address == 0x41 and not ports[0].nibble_bit


def test_sixteen_bit_hop():
    fx = FxUnit()
    fx.set_ctrl(0x08)
    ports = _ports()
    ports[1].address = 0x1000
    ports[1].inc = 6  # increment of 4
    seen = [fx.next_address(ports, 1, False) for _ in range(4)]
    assert seen == [0x1000, 0x1001, 0x1004, 0x1005]


def test_line_draw_advances_every_other_step():
    fx = FxUnit()
    fx.set_ctrl(0x01)
    fx.set_x_increment(0, 0x01, True)  # half a pixel
    ports = _ports()
    ports[0].inc = 2
    ports[1].address = 0x200
    for _ in range(4):
        fx.next_address(ports, 1, True)
    assert ports[1].address == 0x202


def test_increment_sign_and_multiplier():
    fx = FxUnit()
    fx.set_x_increment(0, 0x40, False)
    assert fx.x_increment & 0x80000000
    fx.set_x_increment(0x10, 0x01, False)
    small = fx.x_increment
    fx.set_x_increment(0x10, 0x81, False)
    assert fx.x_increment == small * 32


def test_subpixel_reset_only_in_line_and_poly_modes():
    fx = FxUnit()
    fx.x_position = 0x00051234
    fx.set_x_increment(0, 0, True)
    assert fx.x_position == 0x00051234
    fx.set_ctrl(0x02)
    fx.set_y_increment(0, 0, True)
    fx.set_x_increment(0, 0, True)
    assert fx.x_position == 0x00058000


def test_polygon_fill_positions_port1():
    fx = FxUnit()
    fx.set_ctrl(0x02)
    ports = _ports()
    ports[0].address = 0x3000
    fx.x_position = 3 << 16
    fx.y_position = 10 << 16
    fx.next_address(ports, 1, False)
    assert ports[1].address == 0x3000 + 3
    assert fx.poly_fill_length == 10 - 3


def test_affine_prefetch_requires_affine_mode():
    fx = FxUnit()
    memory = VideoMemory()
    ports = _ports()
    ports[1].address = 0x77
    fx.affine_prefetch(ports, memory)
    assert ports[1].address == 0x77


def test_affine_prefetch_reads_texel_through_map():
    fx = FxUnit()
    memory = VideoMemory()
    fx.set_ctrl(0x03)
    fx.set_tile_base(0x04)
    fx.set_map_base(0x01)  # 8x8 map at 0
    fx.x_position = (2 * 8 + 3) << 16
    fx.y_position = (1 * 8 + 5) << 16
    memory.write(1 * 8 + 2, 7)
    # 8bpp tiles are 64 bytes, 8 bytes per row
    texel = fx.affine_tile_base + 7 * 64 + 5 * 8 + 3
    memory.write(texel, 0x5A)
    ports = _ports()
    fx.affine_prefetch(ports, memory)
    assert ports[1].address == texel
    assert ports[1].rddata == 0x5A


def test_affine_prefetch_clips_to_tile_zero():
    fx = FxUnit()
    memory = VideoMemory()
    fx.set_ctrl(0x03)
    fx.set_tile_base(0x04 | 0x02)
    fx.set_map_base(0x01)
    fx.x_position = (9 * 8 + 3) << 16
    fx.y_position = 0
    ports = _ports()
    fx.affine_prefetch(ports, memory)
    assert ports[1].address == fx.affine_tile_base + 3


def test_dc_value_composer_and_version():
    fx = FxUnit()
    composer = list(range(256))
    assert fx.dc_value(3, composer) == 3
    assert fx.dc_value(0x0B, [0xFF] * 256) == 0x3F
    assert fx.dc_value(0x1C, composer) == ord("V")
    assert fx.dc_value(0x1D, composer) == VERA_VERSION_MAJOR


def test_dc_value_positions_and_cache():
    fx = FxUnit()
    fx.x_position = (0x123 << 16) | 0x80
    fx.cache[:] = bytes([9, 8, 7, 6])
    assert fx.dc_value(0x10, []) == 0x23
    assert fx.dc_value(0x11, []) == 0x01 | 0x80
    assert [fx.dc_value(i, []) for i in range(0x18, 0x1C)] == [9, 8, 7, 6]
    fx.poly_fill_length = 0x3F8
    assert fx.dc_value(0x17, []) == 0x3F8 >> 2
    fx.poly_fill_length = 800
    assert fx.dc_value(0x16, []) == 0x80