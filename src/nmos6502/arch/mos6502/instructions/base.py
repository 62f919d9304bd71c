# src/nmos6502/arch/mos6502/instructions/base.py
"""
MOS 6502 アドレッシングモード解決ロジック。

各リゾルバは「最初のオペランドバイトのアドレス」を受け取り、オペランドバイトを
バスから読み出して実効アドレスまたは即値を返す。PCの更新は呼び出し側が
オペランド長に基づいて行う。
"""
from enum import Enum
from typing import Callable, Dict, List, NamedTuple, Optional
from nmos6502.transport.bus import Bus
from nmos6502.arch.mos6502.state import Mos6502CpuState

# @intent:responsibility 13種類のアドレッシングモード。
class AddressingMode(Enum):
    IMPLIED = "IMPLIED"
    ACCUMULATOR = "ACCUMULATOR"
    IMMEDIATE = "IMMEDIATE"
    ZEROPAGE = "ZEROPAGE"
    ZEROPAGE_X = "ZEROPAGE_X"
    ZEROPAGE_Y = "ZEROPAGE_Y"
    ABSOLUTE = "ABSOLUTE"
    ABSOLUTE_X = "ABSOLUTE_X"
    ABSOLUTE_Y = "ABSOLUTE_Y"
    RELATIVE = "RELATIVE"
    INDIRECT = "INDIRECT"
    INDEXED_INDIRECT = "INDEXED_INDIRECT"  # (zp,X)
    INDIRECT_INDEXED = "INDIRECT_INDEXED"  # (zp),Y

# @intent:responsibility モードごとのオペランドバイト数。
OPERAND_LENGTH: Dict[AddressingMode, int] = {
    AddressingMode.IMPLIED: 0,
    AddressingMode.ACCUMULATOR: 0,
    AddressingMode.IMMEDIATE: 1,
    AddressingMode.ZEROPAGE: 1,
    AddressingMode.ZEROPAGE_X: 1,
    AddressingMode.ZEROPAGE_Y: 1,
    AddressingMode.ABSOLUTE: 2,
    AddressingMode.ABSOLUTE_X: 2,
    AddressingMode.ABSOLUTE_Y: 2,
    AddressingMode.RELATIVE: 1,
    AddressingMode.INDIRECT: 2,
    AddressingMode.INDEXED_INDIRECT: 1,
    AddressingMode.INDIRECT_INDEXED: 1,
}

# @intent:responsibility アドレッシングモードの解決結果。
# address: 解決された実効アドレス（Relativeでは分岐先）。Implied/Accumulator/Immediateの場合はNone
# value: Immediateの場合の値、それ以外はNone
# operand_bytes: オペランドとしてフェッチされたバイト列
class AddressingResult(NamedTuple):
    mode: AddressingMode
    address: Optional[int]
    value: Optional[int]
    operand_bytes: List[int]

AddrFunc = Callable[[int, Bus, Mos6502CpuState], AddressingResult]

def sign_extend(offset: int) -> int:
    return offset - 0x100 if offset & 0x80 else offset

def _fetch16(pc: int, bus: Bus):
    lo = bus.read(pc & 0xFFFF)
    hi = bus.read((pc + 1) & 0xFFFF)
    return lo, hi

# --- Addressing Modes ---

def addr_implied(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    return AddressingResult(AddressingMode.IMPLIED, None, None, [])

def addr_accumulator(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    return AddressingResult(AddressingMode.ACCUMULATOR, None, None, [])

# @intent:responsibility Immediate Mode (#$xx)。フェッチしたバイトそのものがオペランド。
def addr_immediate(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    val = bus.read(pc & 0xFFFF)
    return AddressingResult(AddressingMode.IMMEDIATE, None, val, [val])

def addr_zeropage(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    addr = bus.read(pc & 0xFFFF)
    return AddressingResult(AddressingMode.ZEROPAGE, addr, None, [addr])

# @intent:note ゼロページ内でラップアラウンドする ($FF + 1 -> $00)。ページ1へは繰り上がらない。
def addr_zeropage_x(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    base = bus.read(pc & 0xFFFF)
    return AddressingResult(AddressingMode.ZEROPAGE_X, (base + state.x) & 0xFF, None, [base])

# @intent:note LDX, STX 専用。ラップアラウンドあり。
def addr_zeropage_y(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    base = bus.read(pc & 0xFFFF)
    return AddressingResult(AddressingMode.ZEROPAGE_Y, (base + state.y) & 0xFF, None, [base])

def addr_absolute(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    lo, hi = _fetch16(pc, bus)
    return AddressingResult(AddressingMode.ABSOLUTE, (hi << 8) | lo, None, [lo, hi])

# @intent:responsibility JSR専用のリゾルバ。下位バイトのみをバスから読み出す。
# @intent:note 上位バイトの読み出しは戻りアドレスのプッシュ後に jsr が行う。
#              ここでは表示用にログを残さない peek で上位バイトを得る。
def addr_jsr_target(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    lo = bus.read(pc & 0xFFFF)
    hi = bus.peek((pc + 1) & 0xFFFF)
    return AddressingResult(AddressingMode.ABSOLUTE, (hi << 8) | lo, None, [lo, hi])

# @intent:note 16ビットでラップする。ページ境界の特別扱いはしない。
def addr_absolute_x(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    lo, hi = _fetch16(pc, bus)
    addr = (((hi << 8) | lo) + state.x) & 0xFFFF
    return AddressingResult(AddressingMode.ABSOLUTE_X, addr, None, [lo, hi])

def addr_absolute_y(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    lo, hi = _fetch16(pc, bus)
    addr = (((hi << 8) | lo) + state.y) & 0xFFFF
    return AddressingResult(AddressingMode.ABSOLUTE_Y, addr, None, [lo, hi])

# @intent:responsibility Relative Mode (Branch)。戻り値のアドレスは分岐先の絶対アドレス。
# @intent:note オフセットはオペランドを読み終えた後のPCに加算される。
def addr_relative(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    offset = bus.read(pc & 0xFFFF)
    dest_addr = (pc + 1 + sign_extend(offset)) & 0xFFFF
    return AddressingResult(AddressingMode.RELATIVE, dest_addr, None, [offset])

# @intent:responsibility Indirect Mode ($xxxx) - JMP only
# @intent:note NMOSのページ境界バグ（$xxFFで上位バイトを$xx00から読む）は再現しない。
def addr_indirect(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    ptr_lo, ptr_hi = _fetch16(pc, bus)
    ptr = (ptr_hi << 8) | ptr_lo
    eff_lo = bus.read(ptr)
    eff_hi = bus.read((ptr + 1) & 0xFFFF)
    return AddressingResult(AddressingMode.INDIRECT, (eff_hi << 8) | eff_lo, None, [ptr_lo, ptr_hi])

# @intent:responsibility Indexed Indirect Mode ($xx,X) - "Pre-indexed"
# @intent:note ポインタ位置も上位バイトの+1もゼロページ内でラップする。
def addr_indexed_indirect(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    base = bus.read(pc & 0xFFFF)
    ptr_addr = (base + state.x) & 0xFF
    lo = bus.read(ptr_addr)
    hi = bus.read((ptr_addr + 1) & 0xFF)
    return AddressingResult(AddressingMode.INDEXED_INDIRECT, (hi << 8) | lo, None, [base])

# @intent:responsibility Indirect Indexed Mode ($xx),Y - "Post-indexed"
# @intent:note ポインタ読み出しはゼロページ内でラップするが、最後の+Yは16ビット空間全体でラップする。
def addr_indirect_indexed(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    ptr_addr = bus.read(pc & 0xFFFF)
    lo = bus.read(ptr_addr)
    hi = bus.read((ptr_addr + 1) & 0xFF)
    addr = (((hi << 8) | lo) + state.y) & 0xFFFF
    return AddressingResult(AddressingMode.INDIRECT_INDEXED, addr, None, [ptr_addr])

RESOLVERS: Dict[AddressingMode, AddrFunc] = {
    AddressingMode.IMPLIED: addr_implied,
    AddressingMode.ACCUMULATOR: addr_accumulator,
    AddressingMode.IMMEDIATE: addr_immediate,
    AddressingMode.ZEROPAGE: addr_zeropage,
    AddressingMode.ZEROPAGE_X: addr_zeropage_x,
    AddressingMode.ZEROPAGE_Y: addr_zeropage_y,
    AddressingMode.ABSOLUTE: addr_absolute,
    AddressingMode.ABSOLUTE_X: addr_absolute_x,
    AddressingMode.ABSOLUTE_Y: addr_absolute_y,
    AddressingMode.RELATIVE: addr_relative,
    AddressingMode.INDIRECT: addr_indirect,
    AddressingMode.INDEXED_INDIRECT: addr_indexed_indirect,
    AddressingMode.INDIRECT_INDEXED: addr_indirect_indexed,
}

# @intent:responsibility オペランドのテキスト表現。CPUのOperationと逆アセンブラで共用する。
# @intent:pre-condition next_pcは命令の次のアドレス（Relativeの分岐先計算に使用）。
def format_operand(mode: AddressingMode, operand_bytes: List[int], next_pc: int) -> str:
    if mode == AddressingMode.IMPLIED:
        return ""
    if mode == AddressingMode.ACCUMULATOR:
        return "A"

    b0 = operand_bytes[0]
    if mode == AddressingMode.IMMEDIATE:
        return f"#${b0:02X}"
    if mode == AddressingMode.ZEROPAGE:
        return f"${b0:02X}"
    if mode == AddressingMode.ZEROPAGE_X:
        return f"${b0:02X},X"
    if mode == AddressingMode.ZEROPAGE_Y:
        return f"${b0:02X},Y"
    if mode == AddressingMode.RELATIVE:
        return f"${(next_pc + sign_extend(b0)) & 0xFFFF:04X}"
    if mode == AddressingMode.INDEXED_INDIRECT:
        return f"(${b0:02X},X)"
    if mode == AddressingMode.INDIRECT_INDEXED:
        return f"(${b0:02X}),Y"

    word = (operand_bytes[1] << 8) | b0
    if mode == AddressingMode.ABSOLUTE:
        return f"${word:04X}"
    if mode == AddressingMode.ABSOLUTE_X:
        return f"${word:04X},X"
    if mode == AddressingMode.ABSOLUTE_Y:
        return f"${word:04X},Y"
    return f"(${word:04X})"
