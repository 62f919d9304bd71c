# src/nmos6502/arch/mos6502/instructions/control.py
"""
MOS 6502 制御系命令 (Branch, Jump, Stack, Flags, NOP)。

実行時点で state.pc は既に命令長分進められている（AbstractCpu.step() のフロー）。
PCを書き換えない命令はそのまま次の命令へ進む。
"""
from typing import Tuple
from nmos6502.transport.bus import Bus
from nmos6502.arch.mos6502.state import Mos6502CpuState
from nmos6502.arch.mos6502.instructions.base import AddressingResult
from nmos6502.arch.mos6502.instructions.flags import update_nz

IRQ_VECTOR = 0xFFFE

# --- Stack helpers ---
# @intent:invariant スタックは$0100-$01FFに閉じ、SPは8ビットでラップする。

# @intent:responsibility $0100+SP に書いてから SP をデクリメントする。
def push8(state: Mos6502CpuState, bus: Bus, value: int) -> Mos6502CpuState:
    bus.write(state.stack_address, value & 0xFF)
    return state.replace(sp=(state.sp - 1) & 0xFF)

# @intent:responsibility SP をインクリメントしてから $0100+SP を読む。
def pop8(state: Mos6502CpuState, bus: Bus) -> Tuple[Mos6502CpuState, int]:
    state = state.replace(sp=(state.sp + 1) & 0xFF)
    return state, bus.read(state.stack_address)

# 上位バイト、下位バイトの順に積む
def push16(state: Mos6502CpuState, bus: Bus, value: int) -> Mos6502CpuState:
    state = push8(state, bus, (value >> 8) & 0xFF)
    return push8(state, bus, value & 0xFF)

def pop16(state: Mos6502CpuState, bus: Bus) -> Tuple[Mos6502CpuState, int]:
    state, lo = pop8(state, bus)
    state, hi = pop8(state, bus)
    return state, (hi << 8) | lo

# --- Branch Instructions ---
# @intent:note 各分岐命令は1つのフラグを固定の極性で検査する。
#              addr_res.address はオペランド消費後のPCに符号拡張オフセットを加えた分岐先。

def _branch(state: Mos6502CpuState, addr_res: AddressingResult, condition: bool) -> Mos6502CpuState:
    if condition:
        return state.replace(pc=addr_res.address)
    return state

def bpl(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return _branch(state, addr_res, not state.flag_n)

def bmi(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return _branch(state, addr_res, state.flag_n)

def bvc(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return _branch(state, addr_res, not state.flag_v)

def bvs(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return _branch(state, addr_res, state.flag_v)

def bcc(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return _branch(state, addr_res, not state.flag_c)

def bcs(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return _branch(state, addr_res, state.flag_c)

def bne(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return _branch(state, addr_res, not state.flag_z)

def beq(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return _branch(state, addr_res, state.flag_z)

# --- Jump Instructions ---

def jmp(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return state.replace(pc=addr_res.address)

# @intent:note 積まれる戻りアドレスはJSR命令の *最後のバイト* のアドレス（次の命令 - 1）。
#              実機では下位バイトのフェッチと上位バイトのフェッチの間にプッシュが入るため、
#              その時点のPCがちょうどこの値になる。
def jsr(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    ret_addr = (state.pc - 1) & 0xFFFF
    state = push16(state, bus, ret_addr)
    # 上位バイトはプッシュの後に読む（スタックと重なる場合はプッシュ後の値になる）
    hi = bus.read(ret_addr)
    return state.replace(pc=(hi << 8) | addr_res.operand_bytes[0])

# @intent:note 取り出した値 + 1 へ戻る。
def rts(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    state, ret_addr = pop16(state, bus)
    return state.replace(pc=(ret_addr + 1) & 0xFFFF)

# --- Stack Operations (PHA, PHP, PLA, PLP) ---

def pha(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return push8(state, bus, state.a)

# @intent:note PHPはBRKと同じくB, bit5を1にして積む。
def php(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return push8(state, bus, state.pushed_flags())

def pla(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    state, val = pop8(state, bus)
    return update_nz(state.replace(a=val), val)

# @intent:note 物理的に存在する6ビットのみを取り込む。
def plp(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    state, val = pop8(state, bus)
    return state.with_pulled_flags(val)

# --- Flag Operations (CLC, SEC, etc) ---

def clc(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return state.update_flags(c=False)

def sec(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return state.update_flags(c=True)

def cli(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return state.update_flags(i=False)

def sei(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return state.update_flags(i=True)

def clv(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return state.update_flags(v=False)

def cld(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return state.update_flags(d=False)

def sed(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return state.update_flags(d=True)

# --- System / Other ---

def nop(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    return state

# @intent:note BRKは1バイト命令として扱う。積むPCはオペコード直後のアドレス。
#              PCH, PCL, P|B|bit5 の順に積み、Iを立てて$FFFE/$FFFFのベクタへ飛ぶ。
def brk(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    state = push16(state, bus, state.pc)
    state = push8(state, bus, state.pushed_flags())

    vec_lo = bus.read(IRQ_VECTOR)
    vec_hi = bus.read(IRQ_VECTOR + 1)
    return state.update_flags(i=True).replace(pc=(vec_hi << 8) | vec_lo)

# @intent:note フラグ（物理6ビットのみ）、PCL、PCH の順に取り出す。+1 はしない。
def rti(state: Mos6502CpuState, bus: Bus, addr_res: AddressingResult) -> Mos6502CpuState:
    state, p_val = pop8(state, bus)
    state = state.with_pulled_flags(p_val)
    state, ret_addr = pop16(state, bus)
    return state.replace(pc=ret_addr)
