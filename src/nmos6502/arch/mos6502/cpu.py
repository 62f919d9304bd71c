# src/nmos6502/arch/mos6502/cpu.py
"""
MOS 6502 CPUエミュレーションの中心モジュール。
"""
from typing import Dict, List, Tuple
from nmos6502.core.snapshot import Operation
from nmos6502.common.types import RegisterLayoutInfo, RegisterInfo
from nmos6502.core.cpu import AbstractCpu
from nmos6502.transport.bus import Bus
from nmos6502.arch.mos6502.state import Mos6502CpuState
from nmos6502.arch.mos6502.instructions import decode_opcode, execute_instruction
from nmos6502.arch.mos6502 import disassembler

RESET_VECTOR = 0xFFFC

# @intent:responsibility MOS 6502 CPUの具体的なエミュレーションロジックを提供する。
class Mos6502Cpu(AbstractCpu):
    """
    MOS 6502 CPUをエミュレートするクラス。

    生成時およびreset()時に$FFFC/$FFFDのリセットベクタからPCを読み込む。
    バスはこの時点で読み出し可能になっている必要がある。
    """
    def __init__(self, bus: Bus):
        super().__init__(bus)

    # @intent:responsibility 電源投入時の状態を生成する（A=X=Y=0, P=I, SP=$FD, PCはリセットベクタ）。
    # @intent:note リセットベクタの読み出しはpeekで行い、アクティビティログに残さない。
    def _create_initial_state(self) -> Mos6502CpuState:
        lo = self._bus.peek(RESET_VECTOR)
        hi = self._bus.peek(RESET_VECTOR + 1)
        return Mos6502CpuState(pc=(hi << 8) | lo, sp=0xFD, p=Mos6502CpuState.I_FLAG)

    def get_state(self) -> Mos6502CpuState:
        return self._state

    # @intent:responsibility 命令フェッチ。
    def _fetch(self) -> int:
        return self._bus.read(self._state.pc)

    # @intent:responsibility 命令デコード。オペランドと実効アドレスはこの時点で解決される。
    def _decode(self, opcode: int) -> Operation:
        return decode_opcode(opcode, self._bus, self._state.pc, self._state)

    # @intent:responsibility 命令実行。PCは既に次の命令を指しており、分岐/ジャンプ命令だけが上書きする。
    def _execute(self, operation: Operation) -> None:
        self._state = execute_instruction(operation, self._state, self._bus)

    # @intent:responsibility レジスタマップ（トレース表示用）を返す。
    def get_register_map(self) -> Dict[str, int]:
        state = self._state
        return {
            "A": state.a,
            "X": state.x,
            "Y": state.y,
            "PC": state.pc,
            "S": state.sp,
            "P": state.p,
        }

    def get_flag_state(self) -> Dict[str, bool]:
        state = self._state
        return {
            "N": state.flag_n,
            "V": state.flag_v,
            "D": state.flag_d,
            "I": state.flag_i,
            "Z": state.flag_z,
            "C": state.flag_c,
        }

    def get_register_layout(self) -> List[RegisterLayoutInfo]:
        return [
            RegisterLayoutInfo("Registers", [
                RegisterInfo("A", 8),
                RegisterInfo("X", 8),
                RegisterInfo("Y", 8),
                RegisterInfo("P", 8),
            ]),
            RegisterLayoutInfo("Pointers", [
                RegisterInfo("PC", 16),
                RegisterInfo("S", 8),
            ]),
        ]

    # @intent:responsibility 指定範囲の逆アセンブル結果を返す。
    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        return disassembler.disassemble(self._bus, start_addr, length)
