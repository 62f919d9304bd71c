# src/nmos6502/arch/mos6502/instructions/flags.py
"""
MOS 6502 フラグ計算ヘルパー。

転送・演算・比較・スタック命令で共有される N/Z/C/V の導出ロジック。
全て「幅を広げた演算結果」から導く。
"""
from nmos6502.arch.mos6502.state import Mos6502CpuState

def to_signed(value: int) -> int:
    return value - 0x100 if value & 0x80 else value

# @intent:responsibility N, Z フラグ更新（データ転送・演算の大部分）。
def update_nz(state: Mos6502CpuState, value: int) -> Mos6502CpuState:
    return state.update_flags(n=(value & 0x80) != 0, z=(value & 0xFF) == 0)

# @intent:responsibility CMP/CPX/CPY。reg - M を9ビット以上で計算し、C は借りが無かったとき1。
def update_nzc_compare(state: Mos6502CpuState, reg_val: int, mem_val: int) -> Mos6502CpuState:
    diff = reg_val - mem_val
    return state.update_flags(
        c=diff >= 0,
        z=(diff & 0xFF) == 0,
        n=(diff & 0x80) != 0,
    )

# @intent:responsibility ADC。9ビットの符号なし和と符号付き和からC, Vを決め、Aに下位8ビットを格納する。
# @intent:note Decimalフラグが立っていてもBCD補正は行わない。
def add_with_carry(state: Mos6502CpuState, val: int) -> Mos6502CpuState:
    c = 1 if state.flag_c else 0
    unsigned = state.a + val + c
    signed = to_signed(state.a) + to_signed(val) + c
    res = unsigned & 0xFF

    new_state = state.replace(a=res).update_flags(
        c=(unsigned >> 8) != 0,
        v=signed > 127 or signed < -128,
    )
    return update_nz(new_state, res)

# @intent:responsibility SBC。A - M - (1 - C)。C は借りが無かったとき1（比較命令と同じ反転規約）。
def subtract_with_borrow(state: Mos6502CpuState, val: int) -> Mos6502CpuState:
    borrow = 0 if state.flag_c else 1
    unsigned = state.a - val - borrow
    signed = to_signed(state.a) - to_signed(val) - borrow
    res = unsigned & 0xFF

    new_state = state.replace(a=res).update_flags(
        c=unsigned >= 0,
        v=signed > 127 or signed < -128,
    )
    return update_nz(new_state, res)
