# nmos6502/core/cpu.py
"""
Core Layer (抽象CPU)

このモジュールは、CPUの基本的な状態管理と命令サイクルの駆動に関する抽象化を提供します。
具体的な命令の振る舞いはInstruction Layerに移譲されます。
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, List, Tuple

from nmos6502.transport.bus import Bus
from nmos6502.core.errors import IllegalOpcodeError
from nmos6502.core.snapshot import Snapshot, Operation, Metadata
from nmos6502.core.state import CpuState
from nmos6502.common.types import SymbolMap, RegisterLayoutInfo

logger = logging.getLogger(__name__)

# @intent:responsibility 抽象CPUの基本機能とインターフェースを定義します。
class AbstractCpu(ABC):
    """
    CPUエミュレーションの基底となる抽象クラス。
    Busとのインターフェース、状態管理、命令サイクルの雛形を提供します。
    CPUインスタンスは呼び出し元が所有し、グローバルな状態は持ちません。
    """
    # @intent:pre-condition `bus`は read/write を備えたBusオブジェクトである必要があります。
    def __init__(self, bus: Bus):
        self._bus = bus
        self._state: CpuState = self._create_initial_state()
        self._instruction_count: int = 0
        self._symbol_map: SymbolMap = {}
        self._reverse_symbol_map: Dict[int, str] = {}
        # @intent:rationale Stateの直接操作を避けるため、protectedな命名規則を採用。
        #                  外部からのアクセスは`get_state()`/`restore_state()`を介して行う。

    @property
    def bus(self) -> Bus:
        return self._bus

    @property
    def instruction_count(self) -> int:
        return self._instruction_count

    # @intent:responsibility シンボルマップを設定し、アドレスからラベルを引く逆引き表を作ります。
    def set_symbol_map(self, symbol_map: SymbolMap) -> None:
        self._symbol_map = dict(symbol_map)
        self._reverse_symbol_map = {addr: name for name, addr in symbol_map.items()}

    def get_symbol_map(self) -> SymbolMap:
        return self._symbol_map

    # @intent:responsibility 初期状態のCpuStateオブジェクトを生成します。
    @abstractmethod
    def _create_initial_state(self) -> CpuState:
        pass

    # @intent:responsibility CPUをリセットし、初期状態に戻します。
    def reset(self) -> None:
        self._state = self._create_initial_state()
        self._instruction_count = 0
        logger.debug("CPU reset, PC=$%04X", self._state.pc)

    def get_state(self) -> CpuState:
        return self._state

    # @intent:responsibility 外部（デバッガ等）で保存した状態を書き戻します。
    def restore_state(self, state: CpuState) -> None:
        self._state = state

    # @intent:responsibility 現在のPCからオペコードを読み出します。PCはまだ進めません。
    @abstractmethod
    def _fetch(self) -> int:
        pass

    # @intent:responsibility オペコードを解析し、Operationに変換します。
    # @intent:post-condition 未定義オペコードの場合はIllegalOpcodeErrorを送出し、状態を変更しません。
    @abstractmethod
    def _decode(self, opcode: int) -> Operation:
        pass

    # @intent:responsibility デコード済み命令を実行し、CPUの状態を更新します。
    @abstractmethod
    def _execute(self, operation: Operation) -> None:
        pass

    # @intent:responsibility CPUを1命令進め、その結果のスナップショットを返します。
    # @intent:rationale Template Methodパターン（ログクリア→フェッチ→デコード→PC更新→実行→Snapshot生成）。
    def step(self) -> Snapshot:
        """
        1命令を実行します。未定義オペコードに出会った場合は例外を送出せず、
        errorを持つSnapshotを返します（レジスタとメモリは変更されません）。
        """
        self._bus.get_and_clear_activity_log()
        initial_pc = self._state.pc

        opcode = self._fetch()

        try:
            operation = self._decode(opcode)
        except IllegalOpcodeError as e:
            logger.warning("%s", e)
            return Snapshot(
                state=self._state,
                operation=Operation(opcode_hex=f"{opcode:02X}", mnemonic="???", address=initial_pc),
                metadata=Metadata(instruction_count=self._instruction_count),
                bus_activity=self._bus.get_and_clear_activity_log(),
                error=e,
            )

        self._update_pc(operation)
        self._execute(operation)

        return self._create_snapshot(initial_pc, operation)

    # @intent:responsibility 命令実行前にPCを命令長分進めます。
    def _update_pc(self, operation: Operation) -> None:
        self._state = replace(self._state, pc=(self._state.pc + operation.length) & 0xFFFF)

    def _create_snapshot(self, initial_pc: int, operation: Operation) -> Snapshot:
        bus_activity = self._bus.get_and_clear_activity_log()
        self._instruction_count += 1

        symbol_label = self._reverse_symbol_map.get(initial_pc, "")
        symbol_info = f"{symbol_label}: " if symbol_label else ""
        symbol_info += operation.mnemonic
        if operation.operands:
            symbol_info += " " + ", ".join(operation.operands)

        return Snapshot(
            state=self._state, # 状態は置き換え方式で更新されるため、以後のstepで変化しない
            operation=operation,
            metadata=Metadata(instruction_count=self._instruction_count, symbol_info=symbol_info),
            bus_activity=bus_activity,
        )

    @abstractmethod
    def get_register_map(self) -> Dict[str, int]:
        """
        現在のレジスタ値を辞書形式で返す。
        """
        pass

    @abstractmethod
    def get_register_layout(self) -> List[RegisterLayoutInfo]:
        pass

    @abstractmethod
    def get_flag_state(self) -> Dict[str, bool]:
        pass

    @abstractmethod
    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        """
        指定されたメモリ範囲を逆アセンブルし、(address, hex_bytes, text) のタプルリストを返す。
        """
        pass
