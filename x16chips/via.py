"""6522 VIA timers and registers, and the first VIA's port wiring."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .serial import (
    SERIAL_ATNIN_MASK,
    SERIAL_CLOCKIN_MASK,
    SERIAL_DATAIN_MASK,
    SerialBus,
)

I2C_DATA_MASK = 1 << 0
I2C_CLK_MASK = 1 << 1
JOY_LATCH_MASK = 1 << 2
JOY_CLK_MASK = 1 << 3

REG_ORB = 0
REG_ORA = 1
REG_DDRB = 2
REG_DDRA = 3
REG_T1CL = 4
REG_T1CH = 5
REG_T1LL = 6
REG_T1LH = 7
REG_T2CL = 8
REG_T2CH = 9
REG_SR = 10
REG_ACR = 11
REG_PCR = 12
REG_IFR = 13
REG_IER = 14
REG_ORA_NH = 15

IRQ_CA2 = 0x01
IRQ_CA1 = 0x02
IRQ_SR = 0x04
IRQ_CB2 = 0x08
IRQ_CB1 = 0x10
IRQ_T2 = 0x20
IRQ_T1 = 0x40


class Via:
    """A VIA with its internal timer and interrupt logic; ports read back as written."""

    def __init__(self) -> None:
        self.registers = bytearray(15)
        self.timer_count = [0, 0]
        self.pb6_pulse_counts = 0
        self.timer1_m1 = False
        self.timer_running = [False, False]
        self.pb7_output = True
        self.reset()

    def reset(self) -> None:
        # Timer latches, timer counters and the shift register are not cleared.
        for reg in (0, 1, 2, 3, 11, 12, 13, 14):
            self.registers[reg] = 0
        self.timer_running = [False, False]
        self.timer1_m1 = False
        self.pb7_output = True

    def _clear_pra_irqs(self) -> None:
        regs = self.registers
        regs[REG_IFR] &= ~IRQ_CA1 & 0xFF
        if regs[REG_PCR] & 0b00001010 != 0b00000010:
            regs[REG_IFR] &= ~IRQ_CA2 & 0xFF

    def _clear_prb_irqs(self) -> None:
        regs = self.registers
        regs[REG_IFR] &= ~IRQ_CB1 & 0xFF
        if regs[REG_PCR] & 0b10100000 != 0b00100000:
            regs[REG_IFR] &= ~IRQ_CB2 & 0xFF

    def read(self, reg: int, debug: bool = False) -> int:
        reg &= 0x0F
        regs = self.registers
        if reg == REG_ORB:
            if not debug:
                self._clear_prb_irqs()
            return regs[REG_ORB]
        if reg in (REG_ORA, REG_ORA_NH):
            if not debug:
                self._clear_pra_irqs()
            return regs[REG_ORA]
        if reg == REG_T1CL:
            if not debug:
                regs[REG_IFR] &= ~IRQ_T1 & 0xFF
            return self.timer_count[0] & 0xFF
        if reg == REG_T1CH:
            return (self.timer_count[0] >> 8) & 0xFF
        if reg == REG_T2CL:
            if not debug:
                regs[REG_IFR] &= ~IRQ_T2 & 0xFF
            return self.timer_count[1] & 0xFF
        if reg == REG_T2CH:
            return (self.timer_count[1] >> 8) & 0xFF
        if reg == REG_SR:
            if not debug:
                regs[REG_IFR] &= ~IRQ_SR & 0xFF
            return regs[REG_SR]
        if reg == REG_IFR:
            ifr = regs[REG_IFR]
            irq = (ifr & regs[REG_IER]) != 0
            return ((irq << 7) | ifr) & 0xFF
        if reg == REG_IER:
            return regs[REG_IER] | 0x80
        return regs[reg]

    def write(self, reg: int, value: int) -> None:
        reg &= 0x0F
        value &= 0xFF
        regs = self.registers
        if reg == REG_ORB:
            self._clear_prb_irqs()
            regs[REG_ORB] = value
        elif reg in (REG_ORA, REG_ORA_NH):
            self._clear_pra_irqs()
            regs[REG_ORA] = value
        elif reg == REG_T1CL:
            regs[REG_T1LL] = value
        elif reg in (REG_T1CH, REG_T1LH):
            regs[REG_IFR] &= ~IRQ_T1 & 0xFF
            regs[REG_T1LH] = value
            if reg == REG_T1CH:
                self.timer_count[0] = (value << 8) | regs[REG_T1LL]
                self.timer_running[0] = True
                self.pb7_output = False
        elif reg == REG_T2CH:
            regs[REG_IFR] &= ~IRQ_T2 & 0xFF
            self.timer_count[1] = (value << 8) | regs[REG_T2CL]
            self.timer_running[1] = True
        elif reg == REG_SR:
            regs[REG_IFR] &= ~IRQ_SR & 0xFF
            regs[REG_SR] = value
        elif reg == REG_IFR:
            regs[REG_IFR] &= ~(value & 0x7F) & 0xFF
        elif reg == REG_IER:
            if value & 0x80:
                regs[REG_IER] |= value & 0x7F
            else:
                regs[REG_IER] &= ~value & 0x7F
        else:
            regs[reg] = value

    def _t1_reload(self) -> int:
        return (self.registers[REG_T1LH] << 8) | self.registers[REG_T1LL]

    def step(self, clocks: int) -> None:
        acr = self.registers[REG_ACR]
        ifr = self.registers[REG_IFR]

        # Timer 1 counts even when not running.
        cnt = self.timer_count[0]
        tclk = clocks
        while tclk > 0:
            if self.timer1_m1:
                reload = self._t1_reload()
                tclk_s = min(reload + 1, tclk)
                cnt = reload - tclk_s + 1
                self.timer1_m1 = False
            elif cnt < tclk:
                if self.timer_running[0]:
                    ifr |= IRQ_T1
                    self.pb7_output = not self.pb7_output
                    if not acr & 0x40:
                        self.timer_running[0] = False
                if tclk - cnt == 1:
                    # the counter passes through a -1 state before reloading
                    cnt = 0xFFFF
                    self.timer1_m1 = True
                    tclk_s = 1
                else:
                    reload = self._t1_reload()
                    tclk_s = min(cnt + reload + 2, tclk)
                    cnt += reload - tclk_s + 2
            else:
                cnt -= tclk
                break
            tclk -= tclk_s
        self.timer_count[0] = cnt

        cnt = self.timer_count[1]
        tclk = self.pb6_pulse_counts if acr & 0x20 else clocks
        self.pb6_pulse_counts = 0
        if cnt < tclk:
            if self.timer_running[1]:
                ifr |= IRQ_T2
                self.timer_running[1] = False
            self.timer_count[1] = (0x10000 + cnt - tclk) & 0xFFFFFFFF
        else:
            self.timer_count[1] = cnt - tclk

        self.registers[REG_IFR] = ifr

    def irq(self) -> bool:
        return (self.registers[REG_IFR] & self.registers[REG_IER]) != 0


@dataclass
class I2cLines:
    """The I2C data and clock lines seen by the first VIA's port A."""

    data_in: int = 1
    data_out: int = 1
    clk_in: int = 1


class Via1(Via):
    """The first VIA: I2C and NES controllers on port A, serial bus on port B."""

    def __init__(
        self,
        serial: SerialBus | None = None,
        i2c: I2cLines | None = None,
        i2c_step: Callable[[I2cLines], None] | None = None,
        on_joystick: Callable[[bool, bool], None] | None = None,
    ) -> None:
        self.serial = serial if serial is not None else SerialBus()
        self.i2c = i2c if i2c is not None else I2cLines()
        self.i2c_step = i2c_step
        self.on_joystick = on_joystick
        self.joystick_data = 0
        super().__init__()

    def _step_i2c(self) -> None:
        if self.i2c_step is not None:
            self.i2c_step(self.i2c)

    def reset(self) -> None:
        super().reset()
        self.i2c.clk_in = 1
        self.serial.inputs.atn = 0
        self.serial.inputs.clk = 0
        self.serial.inputs.data = 0
        self.serial.outputs.clk = 1
        self.serial.outputs.data = 1

    def read(self, reg: int, debug: bool = False) -> int:
        reg &= 0x0F
        regs = self.registers
        if reg == REG_ORB:
            if not debug:
                self._clear_prb_irqs()
            if regs[REG_ACR] & 2:
                return 0  # input latching is not modelled
            ddrb = regs[REG_DDRB]
            serial = self.serial
            inputs = (int(serial.read_clk()) << 6) | (int(serial.read_data()) << 7)
            outputs = (
                (serial.inputs.atn << 3)
                | (int(not serial.inputs.clk) << 4)
                | (int(not serial.inputs.data) << 5)
            )
            return ((~ddrb & inputs) | (ddrb & outputs)) & 0xFF
        if reg in (REG_ORA, REG_ORA_NH):
            self._step_i2c()
            if not debug:
                self._clear_pra_irqs()
            if regs[REG_ACR] & 1:
                return 0
            ddra = regs[REG_DDRA]
            i2c = self.i2c
            return (
                (~ddra & i2c.data_out)
                | (ddra & i2c.data_in)
                | (~ddra & I2C_CLK_MASK)
                | (ddra & i2c.clk_in)
                | self.joystick_data
            ) & 0xFF
        return super().read(reg, debug)

    def write(self, reg: int, value: int) -> None:
        super().write(reg, value)
        reg &= 0x0F
        regs = self.registers
        if reg in (REG_ORB, REG_DDRB):
            pb = (regs[REG_ORB] | ~regs[REG_DDRB]) & 0xFF
            self.serial.inputs.atn = int(pb & SERIAL_ATNIN_MASK != 0)
            self.serial.inputs.clk = int(pb & SERIAL_CLOCKIN_MASK == 0)
            self.serial.inputs.data = int(pb & SERIAL_DATAIN_MASK == 0)
        elif reg in (REG_ORA, REG_DDRA):
            self._step_i2c()
            pa = (regs[REG_ORA] | ~regs[REG_DDRA]) & 0xFF
            self.i2c.data_in = pa & I2C_DATA_MASK
            self.i2c.clk_in = (pa & I2C_CLK_MASK) >> 1
            if self.on_joystick is not None:
                self.on_joystick(
                    bool(regs[REG_ORA] & JOY_LATCH_MASK),
                    bool(regs[REG_ORA] & JOY_CLK_MASK),
                )