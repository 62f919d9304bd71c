# nmos6502/core/snapshot.py
"""
実行状態の不変スナップショット

1命令実行後のCPUとバスの状態を記録した不変のデータ構造を定義します。
step()の戻り値であり、未定義オペコードもここで呼び出し元に通知されます。
"""
from dataclasses import dataclass, field
from typing import List, Optional

from nmos6502.core.state import CpuState
from nmos6502.core.errors import IllegalOpcodeError
from nmos6502.transport.bus import BusAccessType, BusAccess

# @intent:responsibility デコードされた命令の詳細を記録します。
@dataclass(frozen=True)
class Operation:
    """
    デコードされた命令の詳細（アドレス、ニーモニック、アドレッシングモード、解決済みオペランド）。
    """
    opcode_hex: str # 例: "4C"
    mnemonic: str # 例: "JMP"
    operands: List[str] = field(default_factory=list) # 例: ["$1234"]
    operand_bytes: List[int] = field(default_factory=list) # 生のオペランドバイト
    length: int = 1 # 命令のバイト長
    address: int = 0 # 命令先頭のアドレス
    mode: Optional[object] = None # アーキテクチャ固有のアドレッシングモード
    effective_address: Optional[int] = None # 解決された実効アドレス（分岐先を含む）
    value: Optional[int] = None # Immediateモードのオペランド値

    @property
    def opcode(self) -> int:
        return int(self.opcode_hex, 16)

# @intent:responsibility 実行に関するメタデータを記録します。
@dataclass(frozen=True)
class Metadata:
    """
    実行に関するメタデータ（累計命令数、シンボル情報など）。
    """
    instruction_count: int
    symbol_info: Optional[str] = None # 例: "loop: BNE $0204"

# @intent:responsibility ある一時点におけるCPUとバスの状態を不変に記録します。
@dataclass(frozen=True)
class Snapshot:
    """
    step()の結果。errorが設定されている場合、その命令は実行されておらず
    レジスタとメモリは変更されていません。
    """
    state: CpuState
    operation: Operation
    metadata: Metadata
    bus_activity: List[BusAccess] = field(default_factory=list)
    error: Optional[IllegalOpcodeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    # @intent:responsibility 例外で扱いたい呼び出し元のために、格納されたエラーを送出します。
    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error

    def writes(self) -> List[BusAccess]:
        return [a for a in self.bus_activity if a.access_type == BusAccessType.WRITE]
