# src/nmos6502/__init__.py
"""
NMOS 6502 命令レベルエミュレータ。
"""
from nmos6502.transport.bus import Bus, RAM, ROM, Device
from nmos6502.core.errors import EmulatorError, IllegalOpcodeError
from nmos6502.arch.mos6502 import Mos6502Cpu, Mos6502CpuState

__version__ = "0.3.0"
