# src/nmos6502/arch/mos6502/state.py
"""
MOS 6502 CPUの状態定義。
"""
from dataclasses import dataclass, replace
from nmos6502.core.state import CpuState

STACK_BASE = 0x0100

# @intent:responsibility MOS 6502 CPUの状態（レジスタ、フラグ）を保持する。
# @intent:invariant pには物理的に存在する6ビット(N, V, D, I, Z, C)のみを保持する。
#                   B と bit5 はスタックへ積む瞬間にだけ現れる。
@dataclass
class Mos6502CpuState(CpuState):
    """
    MOS 6502 CPUのレジスタ状態。spは8ビット値（$0100からのオフセット）。
    """
    sp: int = 0xFD
    a: int = 0
    x: int = 0
    y: int = 0
    p: int = 0x04  # Interrupt Disable のみ

    # Flag bit masks
    C_FLAG = 0x01  # Carry
    Z_FLAG = 0x02  # Zero
    I_FLAG = 0x04  # Interrupt Disable
    D_FLAG = 0x08  # Decimal Mode
    B_FLAG = 0x10  # Break (stack only)
    R_FLAG = 0x20  # bit 5 (stack only)
    V_FLAG = 0x40  # Overflow
    N_FLAG = 0x80  # Negative

    PHYSICAL_FLAGS = 0xCF  # N | V | D | I | Z | C

    def __post_init__(self):
        self.p &= self.PHYSICAL_FLAGS

    @property
    def flag_c(self) -> bool: return bool(self.p & self.C_FLAG)
    @property
    def flag_z(self) -> bool: return bool(self.p & self.Z_FLAG)
    @property
    def flag_i(self) -> bool: return bool(self.p & self.I_FLAG)
    @property
    def flag_d(self) -> bool: return bool(self.p & self.D_FLAG)
    @property
    def flag_v(self) -> bool: return bool(self.p & self.V_FLAG)
    @property
    def flag_n(self) -> bool: return bool(self.p & self.N_FLAG)

    # @intent:responsibility 現在のSPが指す物理アドレス（$0100-$01FF）。
    @property
    def stack_address(self) -> int:
        return STACK_BASE | (self.sp & 0xFF)

    # @intent:responsibility PHP/BRKでスタックに積む値。Bとbit5を常に1にする。
    def pushed_flags(self) -> int:
        return self.p | self.B_FLAG | self.R_FLAG

    # @intent:responsibility PLP/RTIで取り出した値から物理ビットのみを取り込む。
    def with_pulled_flags(self, value: int) -> 'Mos6502CpuState':
        return self.replace(p=value & self.PHYSICAL_FLAGS)

    # @intent:responsibility 指定フラグを更新した新しいインスタンスを返す（不変性の維持）。
    def update_flags(self, **kwargs) -> 'Mos6502CpuState':
        new_p = self.p
        for flag_name, value in kwargs.items():
            mask = getattr(self, f"{flag_name.upper()}_FLAG", 0) & self.PHYSICAL_FLAGS
            if not mask:
                raise ValueError(f"Unknown or non-physical flag: {flag_name}")
            if value:
                new_p |= mask
            else:
                new_p &= ~mask
        return self.replace(p=new_p)

    # @intent:responsibility dataclasses.replaceのラッパー。
    def replace(self, **changes) -> 'Mos6502CpuState':
        return replace(self, **changes)
