"""VERA video memory, address ports and the FX helper unit."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, MutableSequence, Sequence

from .layers import Palette, SpriteProperties
from .psg import Psg

VRAM_SIZE = 0x20000
VRAM_MASK = 0x1FFFF

ADDR_PSG_START = 0x1F9C0
ADDR_PSG_END = 0x1FA00
ADDR_PALETTE_START = 0x1FA00
ADDR_PALETTE_END = 0x1FC00
ADDR_SPRDATA_START = 0x1FC00
ADDR_SPRDATA_END = 0x20000

NUM_SPRITES = 128

VERA_VERSION_MAJOR = 47
VERA_VERSION_MINOR = 0
VERA_VERSION_PATCH = 2
VERA_VERSION = (ord("V"), VERA_VERSION_MAJOR, VERA_VERSION_MINOR, VERA_VERSION_PATCH)

INCREMENTS = (
    0, 0,
    1, -1,
    2, -2,
    4, -4,
    8, -8,
    16, -16,
    32, -32,
    64, -64,
    128, -128,
    256, -256,
    512, -512,
    40, -40,
    80, -80,
    160, -160,
    320, -320,
    640, -640,
)

_U32 = 0xFFFFFFFF


def _int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def _int32(value: int) -> int:
    value &= _U32
    return value - 0x100000000 if value & 0x80000000 else value


def _increment_value(low: int, high: int) -> int:
    """Decode an FX increment register pair into 16.16 fixed point."""
    value = ((high & 0x7F) << 15) + ((low & 0xFF) << 7)
    if high & 0x40:
        value |= 0xFFC00000  # sign extend
    if high & 0x80:
        value <<= 5  # times 32
    return value & _U32


class VideoMemory:
    """The 128 KiB video address space with its PSG, palette and sprite windows."""

    def __init__(
        self,
        palette: Palette | None = None,
        psg: Psg | None = None,
        on_audio: Callable[[], None] | None = None,
    ) -> None:
        self.vram = bytearray(VRAM_SIZE)
        self.palette = palette if palette is not None else Palette()
        self.psg = psg if psg is not None else Psg()
        self.on_audio = on_audio
        self.sprite_data = [bytearray(8) for _ in range(NUM_SPRITES)]
        self.sprites = [SpriteProperties() for _ in range(NUM_SPRITES)]

    def __getitem__(self, address: int) -> int:
        return self.vram[address & VRAM_MASK]

    def __len__(self) -> int:
        return VRAM_SIZE

    def read(self, address: int) -> int:
        return self.vram[address & VRAM_MASK]

    def read_range(self, address: int, size: int) -> bytes:
        start = address & VRAM_MASK
        if start + size <= VRAM_SIZE:
            return bytes(self.vram[start:start + size])
        return bytes(self.vram[(address + i) & VRAM_MASK] for i in range(size))

    def _route(self, address: int, value: int) -> None:
        if ADDR_PSG_START <= address < ADDR_PSG_END:
            if self.on_audio is not None:
                self.on_audio()
            self.psg.write_register(address & 0x3F, value)
        elif ADDR_PALETTE_START <= address < ADDR_PALETTE_END:
            self.palette.write_byte(address & 0x1FF, value)
        elif ADDR_SPRDATA_START <= address < ADDR_SPRDATA_END:
            index = (address >> 3) & 0x7F
            self.sprite_data[index][address & 7] = value
            self.sprites[index] = SpriteProperties.from_bytes(self.sprite_data[index])

    def write(self, address: int, value: int) -> None:
        value &= 0xFF
        self.vram[address & VRAM_MASK] = value
        self._route(address, value)

    def write_nibble(
        self, address: int, nibble: bool, value: int, four_bit: bool, transparent: bool
    ) -> None:
        """Write a byte, or in 4-bit mode only the nibble selected by nibble."""
        value &= 0xFF
        index = address & VRAM_MASK
        old = self.vram[index]
        if four_bit:
            if nibble:
                if not transparent or value & 0x0F:
                    self.vram[index] = (old & 0xF0) | (value & 0x0F)
            elif not transparent or value & 0xF0:
                self.vram[index] = (old & 0x0F) | (value & 0xF0)
        elif not transparent or value:
            self.vram[index] = value
        self._route(address, value)

    def cache_write(self, address: int, value: int, mask: int, transparent: bool) -> None:
        """Write one cache byte; mask bit 0 protects the high nibble, bit 1 the low."""
        value &= 0xFF
        if transparent and not value:
            return
        index = address & VRAM_MASK
        old = self.vram[index]
        mask &= 3
        if mask == 0:
            self.vram[index] = value
        elif mask == 1:
            self.vram[index] = (old & 0x0F) | (value & 0xF0)
        elif mask == 2:
            self.vram[index] = (old & 0xF0) | (value & 0x0F)


@dataclass
class AddressPort:
    """One of the two VRAM data ports with its address and increment settings."""

    address: int = 0
    rddata: int = 0
    inc: int = 0
    nibble_bit: bool = False
    nibble_incr: bool = False


class FxUnit:
    """Line draw, polygon fill, affine, cache and multiplier helpers."""

    def __init__(self) -> None:
        self.cache = bytearray(4)
        self.reset()

    def reset(self) -> None:
        self.addr1_mode = 0
        self.x_position = 0x8000
        self.y_position = 0x8000
        self.x_increment = 0
        self.y_increment = 0
        self.cache_write = False
        self.cache_fill = False
        self.four_bit = False
        self.hop16 = False
        self.subtract = False
        self.cache_byte_cycling = False
        self.trans_writes = False
        self.multiplier = False
        self.accumulator = 0
        self.two_bit_poly = False
        self.two_bit_poking = False
        self.cache_nibble_index = 0
        self.cache_byte_index = 0
        self.cache_increment_mode = 0
        self.cache[:] = bytes(4)
        self.hop_align = 0
        self.poly_fill_length = 0
        self.affine_tile_base = 0
        self.affine_map_base = 0
        self.affine_map_size = 2
        self.affine_clip = False

    def set_ctrl(self, value: int) -> None:
        self.addr1_mode = value & 0x03
        self.four_bit = bool(value & 0x04)
        self.hop16 = bool(value & 0x08)
        self.cache_byte_cycling = bool(value & 0x10)
        self.cache_fill = bool(value & 0x20)
        self.cache_write = bool(value & 0x40)
        self.trans_writes = bool(value & 0x80)

    def set_tile_base(self, value: int) -> None:
        self.affine_tile_base = (value & 0xFC) << 9
        self.affine_clip = bool(value & 0x02)
        self.two_bit_poly = bool(value & 0x01)

    def set_map_base(self, value: int) -> None:
        self.affine_map_base = (value & 0xFC) << 9
        self.affine_map_size = 2 << ((value & 0x03) << 1)

    def set_mult(self, value: int) -> None:
        self.cache_increment_mode = value & 0x01
        self.cache_nibble_index = (value >> 1) & 1
        self.cache_byte_index = (value >> 2) & 3
        self.multiplier = bool(value & 0x10)
        self.subtract = bool(value & 0x20)
        if value & 0x40:
            self.accumulate()
        if value & 0x80:
            self.accumulator = 0

    def set_x_increment(self, low: int, high: int, reset_subpixel: bool) -> None:
        self.x_increment = _increment_value(low, high)
        if reset_subpixel and self.addr1_mode in (1, 2):
            self.x_position = (self.x_position & 0x07FF0000) | 0x00008000

    def set_y_increment(self, low: int, high: int, reset_subpixel: bool) -> None:
        self.y_increment = _increment_value(low, high)
        if reset_subpixel and self.addr1_mode in (1, 2):
            self.y_position = (self.y_position & 0x07FF0000) | 0x00008000

    def multiply(self) -> int:
        """Signed product of the two 16-bit halves of the cache."""
        c = self.cache
        return _int32(_int16(c[1] << 8 | c[0]) * _int16(c[3] << 8 | c[2]))

    def accumulate(self) -> None:
        product = self.multiply()
        if self.subtract:
            self.accumulator = _int32(self.accumulator - product)
        else:
            self.accumulator = _int32(self.accumulator + product)

    def dc_value(self, index: int, composer: Sequence[int]) -> int:
        """Value of a DC register slot as seen without read side effects."""
        slot = index & 0x1F
        x = self.x_position
        y = self.y_position
        length = self.poly_fill_length
        if slot <= 0x0F and slot != 0x0B:
            return composer[index & 0xFF]
        if slot == 0x0B:
            return composer[index & 0xFF] & 0x3F
        if slot == 0x10:
            return (x >> 16) & 0xFF
        if slot == 0x11:
            return ((x >> 24) & 0x07) | (x & 0x80)
        if slot == 0x12:
            return (y >> 16) & 0xFF
        if slot == 0x13:
            return ((y >> 24) & 0x07) | (y & 0x80)
        if slot == 0x14:
            return (x >> 8) & 0xFF
        if slot == 0x15:
            return (y >> 8) & 0xFF
        if slot == 0x16:
            poly_2bit = self.two_bit_poly and self.addr1_mode == 2
            if length >= 768:
                return 0x00 if poly_2bit else 0x80
            if self.four_bit:
                if poly_2bit:
                    result = (
                        ((y & 0x8000) >> 8)
                        | ((x >> 11) & 0x60)
                        | ((x >> 14) & 0x10)
                        | ((length & 0x7) << 1)
                        | ((x & 0x8000) >> 15)
                    )
                else:
                    result = (
                        (bool(length & 0xFFF8) << 7)
                        | ((x >> 11) & 0x60)
                        | ((x >> 14) & 0x10)
                        | ((length & 0x7) << 1)
                    )
            else:
                result = (
                    (bool(length & 0xFFF0) << 7)
                    | ((x >> 11) & 0x60)
                    | ((length & 0xF) << 1)
                )
            return result & 0xFF
        if slot == 0x17:
            return (length & 0x03F8) >> 2
        if 0x18 <= slot <= 0x1B:
            return self.cache[slot - 0x18]
        return VERA_VERSION[index % 4]

    @staticmethod
    def _step_nibble(port: AddressPort, target: AddressPort, inc: int) -> None:
        if target.nibble_bit:
            if inc & 1 == 0:
                target.address = (target.address + 1) & _U32
            target.nibble_bit = False
        else:
            if inc & 1:
                target.address = (target.address - 1) & _U32
            target.nibble_bit = True

    def next_address(self, ports: MutableSequence[AddressPort], sel: int, write: bool) -> int:
        """Return the port's address and advance it and the FX state."""
        port = ports[sel]
        address = port.address
        incr = INCREMENTS[port.inc & 0x1F]

        if self.four_bit and port.nibble_incr and not incr:
            self._step_nibble(port, port, port.inc)

        if sel == 1 and self.hop16:
            aligned = self.hop_align == (address & 0x3)
            if incr == 4:
                incr = 1 if aligned else 3
            elif incr == 320:
                incr = 1 if aligned else 319

        port.address = (port.address + incr) & _U32

        if sel == 1 and self.addr1_mode == 1:  # line draw
            self.x_position = (self.x_position + self.x_increment) & _U32
            if self.x_position & 0x10000:
                self.x_position &= ~0x10000 & _U32
                if self.four_bit and ports[0].nibble_incr:
                    self._step_nibble(ports[0], ports[1], ports[0].inc)
                ports[1].address = (ports[1].address + INCREMENTS[ports[0].inc & 0x1F]) & _U32
        elif self.addr1_mode == 2 and not write:  # polygon fill
            self.x_position = (self.x_position + self.x_increment) & _U32
            self.y_position = (self.y_position + self.y_increment) & _U32
            length = (_int32(self.y_position) >> 16) - (_int32(self.x_position) >> 16)
            self.poly_fill_length = length & 0xFFFF
            if sel == 0 and self.cache_byte_cycling and not self.cache_fill:
                self.cache_byte_index = (self.cache_byte_index + 1) & 3
            if sel == 1:
                if self.four_bit:
                    ports[1].address = (ports[0].address + (self.x_position >> 17)) & _U32
                    ports[1].nibble_bit = bool((self.x_position >> 16) & 1)
                else:
                    ports[1].address = (ports[0].address + (self.x_position >> 16)) & _U32
        elif sel == 1 and self.addr1_mode == 3 and not write:  # affine
            self.x_position = (self.x_position + self.x_increment) & _U32
            self.y_position = (self.y_position + self.y_increment) & _U32
        return address

    def affine_prefetch(self, ports: MutableSequence[AddressPort], memory: VideoMemory) -> None:
        """In affine mode, point port 1 at the texel under the current position."""
        if self.addr1_mode != 3:
            return
        x_tile = (self.x_position >> 19) & 0xFF
        y_tile = (self.y_position >> 19) & 0xFF
        x_sub = (self.x_position >> 16) & 0x07
        y_sub = (self.y_position >> 16) & 0x07
        four = int(self.four_bit)
        size = self.affine_map_size

        if not self.affine_clip:
            x_tile &= size - 1
            y_tile &= size - 1

        sub_offset = (y_sub << (3 - four)) + (x_sub >> four)
        if x_tile >= size or y_tile >= size:
            # Clipped: the texel comes from tile 0.
            address = self.affine_tile_base + sub_offset
        else:
            tile_idx = memory.read(self.affine_map_base + y_tile * size + x_tile)
            address = self.affine_tile_base + (tile_idx << (6 - four)) + sub_offset
        ports[1].nibble_bit = bool((x_sub & 1) >> (1 - four))
        ports[1].address = address & _U32
        ports[1].rddata = memory.read(address)