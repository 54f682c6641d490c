"""VERA palette, layer and sprite attribute decoding."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

SCREEN_WIDTH = 640
SCREEN_HEIGHT = 480
PALETTE_ENTRIES = 256

BLUE_SCREEN = 0x0000FF

DEFAULT_PALETTE = (
    0x000, 0xFFF, 0x800, 0xAFE, 0xC4C, 0x0C5, 0x00A, 0xEE7, 0xD85, 0x640, 0xF77, 0x333, 0x777, 0xAF6, 0x08F, 0xBBB,
    0x000, 0x111, 0x222, 0x333, 0x444, 0x555, 0x666, 0x777, 0x888, 0x999, 0xAAA, 0xBBB, 0xCCC, 0xDDD, 0xEEE, 0xFFF,
    0x211, 0x433, 0x644, 0x866, 0xA88, 0xC99, 0xFBB, 0x211, 0x422, 0x633, 0x844, 0xA55, 0xC66, 0xF77, 0x200, 0x411,
    0x611, 0x822, 0xA22, 0xC33, 0xF33, 0x200, 0x400, 0x600, 0x800, 0xA00, 0xC00, 0xF00, 0x221, 0x443, 0x664, 0x886,
    0xAA8, 0xCC9, 0xFEB, 0x211, 0x432, 0x653, 0x874, 0xA95, 0xCB6, 0xFD7, 0x210, 0x431, 0x651, 0x862, 0xA82, 0xCA3,
    0xFC3, 0x210, 0x430, 0x640, 0x860, 0xA80, 0xC90, 0xFB0, 0x121, 0x343, 0x564, 0x786, 0x9A8, 0xBC9, 0xDFB, 0x121,
    0x342, 0x463, 0x684, 0x8A5, 0x9C6, 0xBF7, 0x120, 0x241, 0x461, 0x582, 0x6A2, 0x8C3, 0x9F3, 0x120, 0x240, 0x360,
    0x480, 0x5A0, 0x6C0, 0x7F0, 0x121, 0x343, 0x465, 0x686, 0x8A8, 0x9CA, 0xBFC, 0x121, 0x242, 0x364, 0x485, 0x5A6,
    0x6C8, 0x7F9, 0x020, 0x141, 0x162, 0x283, 0x2A4, 0x3C5, 0x3F6, 0x020, 0x041, 0x061, 0x082, 0x0A2, 0x0C3, 0x0F3,
    0x122, 0x344, 0x466, 0x688, 0x8AA, 0x9CC, 0xBFF, 0x122, 0x244, 0x366, 0x488, 0x5AA, 0x6CC, 0x7FF, 0x022, 0x144,
    0x166, 0x288, 0x2AA, 0x3CC, 0x3FF, 0x022, 0x044, 0x066, 0x088, 0x0AA, 0x0CC, 0x0FF, 0x112, 0x334, 0x456, 0x668,
    0x88A, 0x9AC, 0xBCF, 0x112, 0x224, 0x346, 0x458, 0x56A, 0x68C, 0x79F, 0x002, 0x114, 0x126, 0x238, 0x24A, 0x35C,
    0x36F, 0x002, 0x014, 0x016, 0x028, 0x02A, 0x03C, 0x03F, 0x112, 0x334, 0x546, 0x768, 0x98A, 0xB9C, 0xDBF, 0x112,
    0x324, 0x436, 0x648, 0x85A, 0x96C, 0xB7F, 0x102, 0x214, 0x416, 0x528, 0x62A, 0x83C, 0x93F, 0x102, 0x204, 0x306,
    0x408, 0x50A, 0x60C, 0x70F, 0x212, 0x434, 0x646, 0x868, 0xA8A, 0xC9C, 0xFBE, 0x211, 0x423, 0x635, 0x847, 0xA59,
    0xC6B, 0xF7D, 0x201, 0x413, 0x615, 0x826, 0xA28, 0xC3A, 0xF3C, 0x201, 0x403, 0x604, 0x806, 0xA08, 0xC09, 0xF0B,
)


def entry_to_rgb(entry: int) -> tuple[int, int, int]:
    """Expand a 12-bit 0RGB palette entry to 8-bit red, green and blue."""
    r = (entry >> 8) & 0xF
    g = (entry >> 4) & 0xF
    b = entry & 0xF
    return r << 4 | r, g << 4 | g, b << 4 | b


class Palette:
    """Palette RAM and the 24-bit colours derived from it."""

    def __init__(self) -> None:
        self.raw = bytearray(PALETTE_ENTRIES * 2)
        self.entries = [0] * PALETTE_ENTRIES
        self.dirty = False
        self.reset()

    def reset(self) -> None:
        """Load the default palette; with video output off the screen is blue."""
        for index, entry in enumerate(DEFAULT_PALETTE):
            self.raw[index * 2] = entry & 0xFF
            self.raw[index * 2 + 1] = entry >> 8
        self.refresh(0)

    def write_byte(self, offset: int, value: int) -> None:
        self.raw[offset & 0x1FF] = value & 0xFF
        self.dirty = True

    def refresh(self, dc_video: int) -> None:
        out_mode = dc_video & 3
        chroma_disable = (dc_video & 0x07) == 6
        for index in range(PALETTE_ENTRIES):
            if out_mode == 0:
                self.entries[index] = BLUE_SCREEN
                continue
            entry = self.raw[index * 2] | self.raw[index * 2 + 1] << 8
            r, g, b = entry_to_rgb(entry)
            if chroma_disable:
                r = g = b = (r + g + b) // 3
            self.entries[index] = r << 16 | g << 8 | b
        self.dirty = False

    def color(self, index: int) -> int:
        return self.entries[index & 0xFF]


@dataclass(frozen=True)
class LayerProperties:
    """Geometry of one layer decoded from its seven registers."""

    color_depth: int = 0
    map_base: int = 0
    tile_base: int = 0
    text_mode: bool = False
    text_mode_256c: bool = False
    tile_mode: bool = False
    bitmap_mode: bool = False
    hscroll: int = 0
    vscroll: int = 0
    mapw_log2: int = 0
    maph_log2: int = 0
    tilew: int = 0
    tileh: int = 0
    tilew_log2: int = 0
    tileh_log2: int = 0
    mapw_max: int = 0
    maph_max: int = 0
    tilew_max: int = 0
    tileh_max: int = 0
    layerw_max: int = 0
    layerh_max: int = 0
    tile_size_log2: int = 0
    min_eff_x: int = 0
    max_eff_x: int = 0
    bits_per_pixel: int = 1
    first_color_pos: int = 7
    color_mask: int = 1
    color_fields_max: int = 7

    @classmethod
    def from_registers(
        cls, regs: Sequence[int], previous: LayerProperties | None = None
    ) -> LayerProperties:
        """Decode registers; sizes bitmap mode leaves unset carry over from previous."""
        prev = previous if previous is not None else cls()
        config, mapbase, tilebase = regs[0], regs[1], regs[2]

        color_depth = config & 0x3
        bitmap_mode = (config & 0x4) != 0
        text_mode = color_depth == 0 and not bitmap_mode
        tile_mode = not bitmap_mode and not text_mode

        if bitmap_mode:
            hscroll = vscroll = 0
        else:
            hscroll = regs[3] | (regs[4] & 0xF) << 8
            vscroll = regs[5] | (regs[6] & 0xF) << 8

        mapw = maph = 0
        tilew = tileh = 0
        mapw_log2, maph_log2 = prev.mapw_log2, prev.maph_log2
        tilew_log2, tileh_log2 = prev.tilew_log2, prev.tileh_log2
        if tile_mode or text_mode:
            mapw_log2 = 5 + ((config >> 4) & 3)
            maph_log2 = 5 + ((config >> 6) & 3)
            mapw = 1 << mapw_log2
            maph = 1 << maph_log2
            tilew_log2 = 3 + (tilebase & 1)
            tileh_log2 = 3 + ((tilebase >> 1) & 1)
            tilew = 1 << tilew_log2
            tileh = 1 << tileh_log2
        else:
            # A bitmap is a single tile as large as the screen.
            tilew = 640 if tilebase & 1 else 320
            tileh = SCREEN_HEIGHT

        layerw_max = (mapw * tilew - 1) & 0xFFFF
        layerh_max = (maph * tileh - 1) & 0xFFFF

        if previous is None or previous.layerw_max != layerw_max or previous.hscroll != hscroll:
            xs = [(x + hscroll) & layerw_max for x in range(SCREEN_WIDTH)]
            min_eff_x, max_eff_x = min(xs), max(xs)
        else:
            min_eff_x, max_eff_x = previous.min_eff_x, previous.max_eff_x

        bits_per_pixel = 1 << color_depth
        return cls(
            color_depth=color_depth,
            map_base=mapbase << 9,
            tile_base=(tilebase & 0xFC) << 9,
            text_mode=text_mode,
            text_mode_256c=(config & 8) != 0,
            tile_mode=tile_mode,
            bitmap_mode=bitmap_mode,
            hscroll=hscroll,
            vscroll=vscroll,
            mapw_log2=mapw_log2,
            maph_log2=maph_log2,
            tilew=tilew,
            tileh=tileh,
            tilew_log2=tilew_log2,
            tileh_log2=tileh_log2,
            mapw_max=(mapw - 1) & 0xFFFF,
            maph_max=(maph - 1) & 0xFFFF,
            tilew_max=(tilew - 1) & 0xFFFF,
            tileh_max=(tileh - 1) & 0xFFFF,
            layerw_max=layerw_max,
            layerh_max=layerh_max,
            tile_size_log2=(tilew_log2 + tileh_log2 + color_depth - 3) & 0xFF,
            min_eff_x=min_eff_x,
            max_eff_x=max_eff_x,
            bits_per_pixel=bits_per_pixel,
            first_color_pos=8 - bits_per_pixel,
            color_mask=(1 << bits_per_pixel) - 1,
            color_fields_max=(8 >> color_depth) - 1,
        )

    def eff_x(self, x: int) -> int:
        return (x + self.hscroll) & self.layerw_max

    def eff_y(self, y: int) -> int:
        return (y + self.vscroll) & self.layerh_max

    def map_address(self, eff_x: int, eff_y: int) -> int:
        row = (eff_y >> self.tileh_log2) << self.mapw_log2
        return (self.map_base + ((row + (eff_x >> self.tilew_log2)) << 1)) & 0xFFFFFFFF

    def contains_map_address(self, addr: int) -> bool:
        end = self.map_base + (2 << (self.mapw_log2 + self.maph_log2))
        return self.map_base <= addr < end

    def contains_tile_address(self, addr: int) -> bool:
        if addr < self.tile_base:
            return False
        tile_size = self.tilew * self.tileh * self.bits_per_pixel // 8
        count = 256 if self.bits_per_pixel == 1 else 1024
        return addr < self.tile_base + tile_size * count


@dataclass(frozen=True)
class SpriteProperties:
    """Attributes of one sprite decoded from its eight attribute bytes."""

    zdepth: int = 0
    collision_mask: int = 0
    x: int = 0
    y: int = 0
    width_log2: int = 3
    height_log2: int = 3
    width: int = 8
    height: int = 8
    hflip: bool = False
    vflip: bool = False
    color_mode: int = 0
    address: int = 0
    palette_offset: int = 0

    @classmethod
    def from_bytes(cls, data: Sequence[int]) -> SpriteProperties:
        d0, d1, d2, d3, d4, d5, d6, d7 = (b & 0xFF for b in data[:8])
        width_log2 = ((d7 >> 4) & 3) + 3
        height_log2 = (d7 >> 6) + 3
        width = 1 << width_log2
        height = 1 << height_log2
        x = d2 | (d3 & 3) << 8
        y = d4 | (d5 & 3) << 8
        # Positions near the top of the range wrap to negative coordinates.
        if x >= 0x400 - width:
            x -= 0x400
        if y >= 0x400 - height:
            y -= 0x400
        return cls(
            zdepth=(d6 >> 2) & 3,
            collision_mask=d6 & 0xF0,
            x=x,
            y=y,
            width_log2=width_log2,
            height_log2=height_log2,
            width=width,
            height=height,
            hflip=bool(d6 & 1),
            vflip=bool((d6 >> 1) & 1),
            color_mode=(d1 >> 7) & 1,
            address=d0 << 5 | (d1 & 0xF) << 13,
            palette_offset=(d7 & 0x0F) << 4,
        )