"""Models of the Commander X16 support chips: VERA memory, FX, layers, sprites and audio, the VIAs, SMC and serial bus."""

__version__ = "0.1.0"