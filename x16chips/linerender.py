"""Rendering of single scanlines: sprites, the three layer modes and composition."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from .layers import SCREEN_WIDTH, LayerProperties, SpriteProperties

VRAM_MASK = 0x1FFFF
NUM_SPRITES = 128
SPRITE_CLOCK_BUDGET = 800


def _read(vram: Sequence[int], address: int) -> int:
    return vram[address & VRAM_MASK]


@dataclass
class SpriteLine:
    """Colour, depth and collision mask of every pixel of a rendered sprite line."""

    color: list[int] = field(default_factory=lambda: [0] * SCREEN_WIDTH)
    z: list[int] = field(default_factory=lambda: [0] * SCREEN_WIDTH)
    mask: list[int] = field(default_factory=lambda: [0] * SCREEN_WIDTH)
    collisions: int = 0


def _unpack_sprite_row(vram: Sequence[int], props: SpriteProperties, row: int) -> list[int]:
    shift = props.width_log2 - (1 - props.color_mode)
    start = props.address + (row << shift)
    width = min(props.width, 64)
    if props.color_mode:
        return [_read(vram, start + i) for i in range(width)]
    pixels: list[int] = []
    for i in range(width // 2):
        byte = _read(vram, start + i)
        pixels.append(byte >> 4)
        pixels.append(byte & 0xF)
    return pixels


def render_sprite_line(
    sprites: Sequence[SpriteProperties], vram: Sequence[int], y: int
) -> SpriteLine:
    """Render the sprites crossing line y within the per-line clock budget."""
    line = SpriteLine()
    budget = SPRITE_CLOCK_BUDGET + 1
    for props in sprites[:NUM_SPRITES]:
        # one clock per attribute lookup
        budget = (budget - 1) & 0xFFFF
        if budget == 0:
            break
        if props.zdepth == 0:
            continue
        if y < props.y or y >= props.y + props.height:
            continue

        row = y - props.y
        if props.vflip:
            row = (props.height - 1) - row
        eff_sx = props.width - 1 if props.hflip else 0
        step = -1 if props.hflip else 1
        pixels = _unpack_sprite_row(vram, props, row)
        fetch_mask = ((2 - props.color_mode) << 2) - 1

        for sx in range(props.width):
            line_x = (props.x + sx) & 0xFFFF
            if line_x >= SCREEN_WIDTH:
                eff_sx += step
                continue
            # one clock per fetched 32 bits
            if not sx & fetch_mask:
                budget = (budget - 1) & 0xFFFF
                if budget == 0:
                    break
            # one clock per rendered pixel
            budget = (budget - 1) & 0xFFFF
            if budget == 0:
                break

            col_index = pixels[eff_sx]
            eff_sx += step
            if col_index == 0:
                continue
            line.collisions |= line.mask[line_x] & props.collision_mask
            line.mask[line_x] |= props.collision_mask
            if props.zdepth > line.z[line_x]:
                if col_index < 16:
                    col_index = (col_index + props.palette_offset) & 0xFF
                line.color[line_x] = col_index
                line.z[line_x] = props.zdepth
    return line


def render_text_line(
    props: LayerProperties, props0: LayerProperties, vram: Sequence[int], y: int
) -> list[int]:
    """Render a 1bpp text layer line; props0 supplies the vertical scroll."""
    max_pixels_per_byte = (8 >> props.color_depth) - 1
    eff_y = props0.eff_y(y)
    yy = eff_y & props.tileh_max
    y_add = (yy << props.tilew_log2) >> 3

    def map_entry(eff_x: int) -> tuple[int, int, int]:
        map_addr = props.map_address(eff_x, eff_y)
        tile_index = _read(vram, map_addr)
        attr = _read(vram, map_addr + 1)
        if props.text_mode_256c:
            fg, bg = attr, 0
        else:
            fg, bg = attr & 15, attr >> 4
        return fg, bg, (tile_index << props.tile_size_log2) & 0xFFFFFFFF

    eff_x = props.eff_x(0)
    xx = eff_x & props.tilew_max
    fg_color, bg_color, tile_start = map_entry(eff_x)
    s = _read(vram, props.tile_base + tile_start + y_add + (xx >> 3))
    color_shift = (max_pixels_per_byte - (xx & 7)) & 0xFF

    out = [0] * SCREEN_WIDTH
    for x in range(SCREEN_WIDTH):
        eff_x = props.eff_x(x)
        xx = eff_x & props.tilew_max
        if eff_x & 7 == 0:
            if xx == 0:
                fg_color, bg_color, tile_start = map_entry(eff_x)
            s = _read(vram, props.tile_base + tile_start + y_add + (xx >> 3))
            color_shift = max_pixels_per_byte & 0xFF
        bit = (s >> color_shift) & 1
        color_shift = (color_shift - 1) & 0xFF
        out[x] = fg_color if bit else bg_color
    return out


def render_tile_line(
    props: LayerProperties, props0: LayerProperties, vram: Sequence[int], y: int
) -> list[int]:
    """Render a tiled layer line with flipping and palette offsets."""
    max_pixels_per_byte = (8 >> props.color_depth) - 1
    eff_y = props0.eff_y(y)
    yy = (eff_y & props.tileh_max) & 0xFF
    yy_flip = (yy ^ props.tileh_max) & 0xFF
    row_shift = (props.tilew_log2 + props.color_depth - 3) & 31
    y_add = yy << row_shift
    y_add_flip = yy_flip << row_shift
    bpp = props.bits_per_pixel

    def map_entry(eff_x: int) -> tuple[bool, bool, int, int, int]:
        map_addr = props.map_address(eff_x, eff_y)
        byte0 = _read(vram, map_addr)
        byte1 = _read(vram, map_addr + 1)
        vflip = bool((byte1 >> 3) & 1)
        hflip = bool((byte1 >> 2) & 1)
        tile_index = byte0 | ((byte1 & 3) << 8)
        tile_start = (tile_index << props.tile_size_log2) & 0xFFFFFFFF
        return vflip, hflip, byte1 & 0xF0, tile_start, bpp if hflip else -bpp

    def fetch(eff_x: int) -> tuple[int, int]:
        xx = eff_x & props.tilew_max
        if hflip:
            xx ^= props.tilew_max
            shift = 0
        else:
            shift = props.first_color_pos
        x_add = ((xx << props.color_depth) >> 3) & 0xFFFF
        offset = tile_start + (y_add_flip if vflip else y_add) + x_add
        return _read(vram, props.tile_base + offset), shift

    eff_x = props.eff_x(0)
    vflip, hflip, palette_offset, tile_start, shift_step = map_entry(eff_x)
    s, color_shift = fetch(eff_x)

    out = [0] * SCREEN_WIDTH
    for x in range(SCREEN_WIDTH):
        eff_x = props.eff_x(x)
        if eff_x & max_pixels_per_byte == 0:
            if eff_x & props.tilew_max == 0:
                vflip, hflip, palette_offset, tile_start, shift_step = map_entry(eff_x)
            s, color_shift = fetch(eff_x)
        col_index = (s >> color_shift) & props.color_mask
        color_shift = (color_shift + shift_step) & 0xFF
        if 0 < col_index < 16:
            col_index += palette_offset
            if props.text_mode_256c:
                col_index |= 0x80
        out[x] = col_index & 0xFF
    return out


def render_bitmap_line(
    props: LayerProperties, vram: Sequence[int], y: int, palette_offset: int
) -> list[int]:
    """Render a bitmap layer line; palette_offset is the 4-bit offset register field."""
    palette_offset &= 0xF
    bpp = props.bits_per_pixel
    yy = y % props.tileh
    y_add = (yy * props.tilew * bpp) >> 3

    out = [0] * SCREEN_WIDTH
    for x in range(SCREEN_WIDTH):
        xx = x % props.tilew
        x_add = ((xx * bpp) >> 3) & 0xFFFF
        s = _read(vram, props.tile_base + y_add + x_add)
        shift = props.first_color_pos - ((xx & props.color_fields_max) << props.color_depth)
        col_index = (s >> shift) & props.color_mask
        if 0 < col_index < 16:
            col_index += palette_offset << 4
            if props.text_mode_256c:
                col_index |= 0x80
        out[x] = col_index & 0xFF
    return out


def compose_pixel(sprite_z: int, sprite_color: int, layer0_color: int, layer1_color: int) -> int:
    """Pick the visible colour index from the sprite and the two layers."""
    if sprite_z == 3:
        return sprite_color or layer1_color or layer0_color
    if sprite_z == 2:
        return layer1_color or sprite_color or layer0_color
    if sprite_z == 1:
        return layer1_color or layer0_color or sprite_color
    if sprite_z == 0:
        return layer1_color or layer0_color
    return 0