# src/nmos6502/arch/mos6502/instructions/alu.py
"""
MOS 6502 算術論理演算命令 (ALU)。
Decimalフラグは保持されるが、BCD補正は行わない。
"""
from typing import Callable, Tuple
from nmos6502.transport.bus import Bus
from nmos6502.arch.mos6502.state import Mos6502CpuState
from nmos6502.arch.mos6502.instructions.base import AddressingMode, AddressingResult
from nmos6502.arch.mos6502.instructions.flags import (
    update_nz, update_nzc_compare, add_with_carry, subtract_with_borrow,
)

# @intent:responsibility Immediateなら即値を、それ以外は実効アドレスの内容を返す。
def read_operand(bus: Bus, addr_res: AddressingResult) -> int:
    if addr_res.value is not None:
        return addr_res.value
    return bus.read(addr_res.address)

# --- Logical Operations (AND, ORA, EOR, BIT) ---

def and_(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    res = state.a & read_operand(bus, addr_res)
    return update_nz(state.replace(a=res), res)

def ora(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    res = state.a | read_operand(bus, addr_res)
    return update_nz(state.replace(a=res), res)

def eor(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    res = state.a ^ read_operand(bus, addr_res)
    return update_nz(state.replace(a=res), res)

# @intent:note BIT: N, V はメモリ値のbit7, bit6。Z はメモリ値そのものではなく A & M の結果で決まる。
def bit(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    val = read_operand(bus, addr_res)
    return state.update_flags(
        n=(val & 0x80) != 0,
        v=(val & 0x40) != 0,
        z=(state.a & val) == 0,
    )

# --- Arithmetic Operations (ADC, SBC) ---

def adc(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return add_with_carry(state, read_operand(bus, addr_res))

def sbc(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return subtract_with_borrow(state, read_operand(bus, addr_res))

# --- Compare Operations (CMP, CPX, CPY) ---

def cmp(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return update_nzc_compare(state, state.a, read_operand(bus, addr_res))

def cpx(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return update_nzc_compare(state, state.x, read_operand(bus, addr_res))

def cpy(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return update_nzc_compare(state, state.y, read_operand(bus, addr_res))

# --- Shift / Rotate Operations (ASL, LSR, ROL, ROR) ---
# @intent:note Accumulatorモードとメモリモードで同じ変換を共有する。

# (state, 入力値) -> (キャリー出力, 結果)
ShiftFunc = Callable[[Mos6502CpuState, int], Tuple[bool, int]]

def _read_modify_write(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult,
                       shift: ShiftFunc) -> Mos6502CpuState:
    is_acc = addr_res.mode == AddressingMode.ACCUMULATOR
    val = state.a if is_acc else bus.read(addr_res.address)

    carry, res = shift(state, val)
    new_state = update_nz(state.update_flags(c=carry), res)

    if is_acc:
        return new_state.replace(a=res)
    bus.write(addr_res.address, res)
    return new_state

def _shift_left(state: Mos6502CpuState, val: int) -> Tuple[bool, int]:
    return (val & 0x80) != 0, (val << 1) & 0xFF

def _shift_right(state: Mos6502CpuState, val: int) -> Tuple[bool, int]:
    return (val & 0x01) != 0, val >> 1

# 9ビットローテート（キャリー経由）
def _rotate_left(state: Mos6502CpuState, val: int) -> Tuple[bool, int]:
    return (val & 0x80) != 0, ((val << 1) | (1 if state.flag_c else 0)) & 0xFF

def _rotate_right(state: Mos6502CpuState, val: int) -> Tuple[bool, int]:
    return (val & 0x01) != 0, (val >> 1) | (0x80 if state.flag_c else 0)

def asl(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return _read_modify_write(state, bus, addr_res, _shift_left)

def lsr(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return _read_modify_write(state, bus, addr_res, _shift_right)

def rol(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return _read_modify_write(state, bus, addr_res, _rotate_left)

def ror(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return _read_modify_write(state, bus, addr_res, _rotate_right)

# --- Increment / Decrement (INC, DEC, INX, DEX, INY, DEY) ---

def inc(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    res = (bus.read(addr_res.address) + 1) & 0xFF
    bus.write(addr_res.address, res)
    return update_nz(state, res)

def dec(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    res = (bus.read(addr_res.address) - 1) & 0xFF
    bus.write(addr_res.address, res)
    return update_nz(state, res)

def inx(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    res = (state.x + 1) & 0xFF
    return update_nz(state.replace(x=res), res)

def dex(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    res = (state.x - 1) & 0xFF
    return update_nz(state.replace(x=res), res)

def iny(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    res = (state.y + 1) & 0xFF
    return update_nz(state.replace(y=res), res)

def dey(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    res = (state.y - 1) & 0xFF
    return update_nz(state.replace(y=res), res)
