# x16chips

Pure-Python models of the support chips of the Commander X16 computer. Each
chip is a plain object. You drive it with register reads and writes and with
clock steps, the same way a CPU core would.

## Modules

| Module                | What it holds                                                        |
|-----------------------|----------------------------------------------------------------------|
| `x16chips.pcm`        | `Pcm`: the VERA PCM audio FIFO and sample renderer                   |
| `x16chips.psg`        | `Psg`, `Channel`, `Waveform`: the 16-voice sound generator           |
| `x16chips.spi`        | `VeraSpi`: the VERA SPI controller, with an `SdCard` behind it       |
| `x16chips.wav`        | `WavRecorder`, `RecorderState`, `RecorderCommand`: WAV recording     |
| `x16chips.smc`        | `Smc`, `SmcHost`, `PowerOff`: the I²C system management controller   |
| `x16chips.serial`     | `SerialBus`, `SerialLines`, `IeeeBus`: the Commodore serial bus      |
| `x16chips.via`        | `Via`, `Via1`, `I2cLines`: the 65C22 VIA timers and ports            |
| `x16chips.layers`     | `Palette`, `LayerProperties`, `SpriteProperties`, `entry_to_rgb`     |
| `x16chips.linerender` | `render_sprite_line`, `render_text_line`, `render_tile_line`, `render_bitmap_line`, `compose_pixel`, `SpriteLine` |
| `x16chips.fx`         | `VideoMemory`, `AddressPort`, `FxUnit`: VRAM and the VERA FX helpers |

## Installing

```
pip install .
```

To install with the test tools as well:

```
pip install ".[test]"
```

## Examples

Sound generator output is a flat list of interleaved left and right samples:

```python
from x16chips.psg import Psg

psg = Psg()
psg.write_register(0, 0x00)   # frequency, low byte
psg.write_register(1, 0x04)   # frequency, high byte
psg.write_register(2, 0xFF)   # both channels, full volume
psg.write_register(3, 0x3F)   # pulse wave, 50% duty

samples = psg.render(4)       # 8 ints: L, R, L, R, ...
```

A VIA timer raising its interrupt:

```python
from x16chips.via import Via

via = Via()
via.write(4, 0x10)    # timer 1 latch, low byte
via.write(5, 0x00)    # timer 1 counter, high byte: starts the timer
via.write(14, 0xC0)   # enable the timer 1 interrupt
via.step(0x20)
assert via.irq()
```

Reading a key code from the SMC:

```python
from x16chips.smc import Smc

smc = Smc()
smc.host.keyboard.append(0x1C)
smc.i2c_data(0x07)    # select the keyboard offset
assert smc.read() == 0x1C
```

`WavRecorder` is a context manager; a path ending in `,wait` or `,auto` sets
the recorder paused or waiting for the first non-silent samples, and any other
path starts recording at once.

## Peripherals you supply

The devices a chip talks to are objects you pass in. `SdCard` stands behind
`VeraSpi` and answers every byte with `0xFF`; `IeeeBus` stands behind
`SerialBus` and records commands and serves queued bytes; `SmcHost` stands
behind `Smc` and holds the keyboard and mouse buffers. Put your own object in
their place to connect a disk image, a keyboard or an interrupt line. `Via1`
takes optional `i2c_step` and `on_joystick` callbacks for the I²C bus and the
game controllers.

When the SMC receives the power-off command it raises `PowerOff` rather than
ending the process, so the caller decides how to shut down.

## What this package does not do

The video pieces are separate building blocks: `VideoMemory`, `FxUnit`,
`LayerProperties` and the line renderers. There is no single object that
decodes the VERA register window, runs the scan-out timing and raises the
video interrupts, and nothing draws to a window or screen. There is no CPU,
no machine that wires the chips together, and no command-line program.