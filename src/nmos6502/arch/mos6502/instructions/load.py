# src/nmos6502/arch/mos6502/instructions/load.py
"""
MOS 6502 転送系命令 (Load/Store/Transfer)。
"""
from nmos6502.transport.bus import Bus
from nmos6502.arch.mos6502.state import Mos6502CpuState
from nmos6502.arch.mos6502.instructions.base import AddressingResult
from nmos6502.arch.mos6502.instructions.alu import read_operand
from nmos6502.arch.mos6502.instructions.flags import update_nz

# --- Load (LDA, LDX, LDY) ---
# @intent:responsibility メモリまたは即値をレジスタへロードし、N, Zフラグを更新。

def lda(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    val = read_operand(bus, addr_res)
    return update_nz(state.replace(a=val), val)

def ldx(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    val = read_operand(bus, addr_res)
    return update_nz(state.replace(x=val), val)

def ldy(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    val = read_operand(bus, addr_res)
    return update_nz(state.replace(y=val), val)

# --- Store (STA, STX, STY) ---
# @intent:responsibility レジスタの内容をメモリへストア。フラグ変化なし。

def sta(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    bus.write(addr_res.address, state.a)
    return state

def stx(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    bus.write(addr_res.address, state.x)
    return state

def sty(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    bus.write(addr_res.address, state.y)
    return state

# --- Register Transfers (TAX, TAY, TXA, TYA, TSX, TXS) ---

def tax(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return update_nz(state.replace(x=state.a), state.a)

def tay(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return update_nz(state.replace(y=state.a), state.a)

def txa(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return update_nz(state.replace(a=state.x), state.x)

def tya(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return update_nz(state.replace(a=state.y), state.y)

# @intent:note TSXはSP(8ビット値)をXへ転送し、N, Zを更新する。
def tsx(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return update_nz(state.replace(x=state.sp), state.sp)

# @intent:note TXSはN, Zフラグを更新 *しない*。
def txs(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return state.replace(sp=state.x)
