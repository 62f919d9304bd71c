# nmos6502/debugger/debugger.py
"""
デバッガモジュール。

コアエンジンの実行を制御し、ユーザーが指定した条件（ブレークポイント）で
実行を中断させる責務を負います。未定義オペコードはトラップとして扱い、そこで停止します。
"""
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, List, Optional, Tuple

from nmos6502.core.cpu import AbstractCpu
from nmos6502.core.snapshot import Snapshot
from nmos6502.core.state import CpuState
from nmos6502.transport.bus import BusAccessType

logger = logging.getLogger(__name__)

# @intent:responsibility ブレークポイントの条件タイプを定義します。
class BreakpointConditionType(Enum):
    PC_MATCH = "PC_MATCH"               # プログラムカウンタが特定のアドレスに一致
    MEMORY_READ = "MEMORY_READ"         # 特定のアドレスが読み込まれた
    MEMORY_WRITE = "MEMORY_WRITE"       # 特定のアドレスに書き込まれた
    REGISTER_VALUE = "REGISTER_VALUE"   # 特定のレジスタが特定の値になった
    REGISTER_CHANGE = "REGISTER_CHANGE" # 特定のレジスタの値が変化した

# @intent:responsibility run()/run_back() が停止した理由。
class StopReason(Enum):
    BREAKPOINT = "BREAKPOINT"
    ILLEGAL_OPCODE = "ILLEGAL_OPCODE"
    STEP_LIMIT = "STEP_LIMIT"
    STOPPED = "STOPPED"             # stop() による中断
    HISTORY_START = "HISTORY_START" # run_back() が履歴の先頭に到達

# @intent:responsibility ブレークポイントをトリガーする条件を定義します。
@dataclass(frozen=True)
class BreakpointCondition:
    """
    ブレークポイントがヒットするための条件を定義するデータクラス。
    """
    condition_type: BreakpointConditionType
    value: Optional[int] = None           # PC_MATCH, REGISTER_VALUEで使用
    address: Optional[int] = None         # MEMORY_READ, MEMORY_WRITEで使用
    register_name: Optional[str] = None   # REGISTER_VALUE, REGISTER_CHANGEで使用
    enabled: bool = True                  # 有効/無効状態

# @intent:responsibility コアエンジンの実行制御とブレークポイント管理を行います。
class Debugger:
    """
    CPUの実行を制御し、ブレークポイントの管理を行うクラス。
    """
    # @intent:pre-condition max_historyを指定すると、古い履歴から破棄されます（Noneで無制限）。
    def __init__(self, cpu: AbstractCpu, max_history: Optional[int] = None):
        self._cpu = cpu
        self._breakpoints: List[BreakpointCondition] = []
        self._running: bool = False
        self._previous_state: CpuState = self._cpu.get_state()
        self._last_snapshot: Optional[Snapshot] = None
        # @intent:responsibility 実行履歴（実行前の状態, 実行結果）を保持し、ステップバックをサポートします。
        self._history: Deque[Tuple[CpuState, Snapshot]] = deque(maxlen=max_history)

    def add_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition not in self._breakpoints:
            self._breakpoints.append(condition)

    def update_breakpoint(self, old_condition: BreakpointCondition, new_condition: BreakpointCondition) -> None:
        if old_condition in self._breakpoints:
            idx = self._breakpoints.index(old_condition)
            self._breakpoints[idx] = new_condition

    def remove_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition in self._breakpoints:
            self._breakpoints.remove(condition)

    def get_breakpoints(self) -> List[BreakpointCondition]:
        return list(self._breakpoints)

    def get_history(self) -> List[Snapshot]:
        """
        現在の実行履歴を古い順に返します。
        """
        return [snapshot for _, snapshot in self._history]

    def get_last_snapshot(self) -> Optional[Snapshot]:
        return self._last_snapshot

    def _pc_breakpoint_at(self, pc: int) -> bool:
        return any(
            bp.enabled and bp.condition_type == BreakpointConditionType.PC_MATCH and bp.value == pc
            for bp in self._breakpoints
        )

    def _check_other_breakpoints(self, snapshot: Snapshot, previous_state: Optional[CpuState]) -> bool:
        """
        Snapshotに基づいてPC_MATCH以外のブレークポイントをチェックします。
        """
        current_state = snapshot.state

        for bp in self._breakpoints:
            if not bp.enabled:
                continue

            if bp.condition_type == BreakpointConditionType.MEMORY_READ:
                for access in snapshot.bus_activity:
                    if access.access_type == BusAccessType.READ and access.address == bp.address:
                        return True
            elif bp.condition_type == BreakpointConditionType.MEMORY_WRITE:
                for access in snapshot.bus_activity:
                    if access.access_type == BusAccessType.WRITE and access.address == bp.address:
                        return True
            elif bp.condition_type == BreakpointConditionType.REGISTER_VALUE:
                if bp.register_name and hasattr(current_state, bp.register_name):
                    if getattr(current_state, bp.register_name) == bp.value:
                        return True
            elif bp.condition_type == BreakpointConditionType.REGISTER_CHANGE:
                if bp.register_name and previous_state is not None:
                    if hasattr(current_state, bp.register_name) and hasattr(previous_state, bp.register_name):
                        if getattr(current_state, bp.register_name) != getattr(previous_state, bp.register_name):
                            return True
        return False

    def step_instruction(self) -> Snapshot:
        """
        CPUを1命令分実行し、その結果のSnapshotを返します。
        未定義オペコードの場合は何も実行されていないため、履歴には追加しません。
        """
        self._previous_state = self._cpu.get_state()
        snapshot = self._cpu.step()
        self._last_snapshot = snapshot

        if snapshot.ok:
            self._history.append((self._previous_state, snapshot))
        return snapshot

    def step_back(self) -> Optional[Snapshot]:
        """
        実行履歴を1つ戻り、CPUとメモリの状態を復元します。
        戻った先の直前のSnapshot（無ければNone）を返します。
        """
        if not self._history:
            return None

        state_before, snapshot_to_revert = self._history.pop()

        # バスアクティビティを逆順にスキャンし、書き込み操作を元に戻す（ROMも可、ログには残らない）
        bus = self._cpu.bus
        for access in reversed(snapshot_to_revert.bus_activity):
            if access.access_type == BusAccessType.WRITE and access.previous_data is not None:
                bus.load(access.address, access.previous_data)

        self._cpu.restore_state(state_before)
        self._last_snapshot = self._history[-1][1] if self._history else None
        return self._last_snapshot

    # @intent:responsibility ブレークポイント、未定義オペコード、ステップ上限のいずれかまで実行を継続します。
    # @intent:note 現在のPCにあるブレークポイントでは停止せず、まず1命令進めてから判定を始めます。
    # @intent:pre-condition on_stepを渡すと、実行した各命令のSnapshotで呼び出されます（トレース表示用）。
    def run(self, max_steps: Optional[int] = None,
            on_step: Optional[Callable[[Snapshot], None]] = None) -> StopReason:
        self._running = True
        steps = 0
        first = True

        while self._running:
            if not first and self._pc_breakpoint_at(self._cpu.get_state().pc):
                self._running = False
                logger.info("Breakpoint hit at PC: $%04X", self._cpu.get_state().pc)
                return StopReason.BREAKPOINT
            first = False

            if max_steps is not None and steps >= max_steps:
                self._running = False
                return StopReason.STEP_LIMIT

            snapshot = self.step_instruction()
            steps += 1
            if on_step is not None:
                on_step(snapshot)

            if not snapshot.ok:
                self._running = False
                logger.info("Trap: %s", snapshot.error)
                return StopReason.ILLEGAL_OPCODE

            if self._check_other_breakpoints(snapshot, self._previous_state):
                self._running = False
                logger.info("Breakpoint hit at PC: $%04X", snapshot.state.pc)
                return StopReason.BREAKPOINT

        return StopReason.STOPPED

    # @intent:responsibility 実行を逆方向（過去）へ連続的に戻します。
    def run_back(self) -> StopReason:
        self._running = True

        while self._running:
            snapshot = self.step_back()

            if snapshot is None:
                self._running = False
                logger.info("Reached start of history.")
                return StopReason.HISTORY_START

            if self._pc_breakpoint_at(snapshot.state.pc):
                self._running = False
                logger.info("Reverse breakpoint hit at PC: $%04X", snapshot.state.pc)
                return StopReason.BREAKPOINT

            # 戻った時点のSnapshot（＝その命令実行直後の状態）で評価する
            previous_state = self._history[-1][0] if self._history else None
            if self._check_other_breakpoints(snapshot, previous_state):
                self._running = False
                logger.info("Reverse breakpoint hit at PC: $%04X", snapshot.state.pc)
                return StopReason.BREAKPOINT

        return StopReason.STOPPED

    def stop(self) -> None:
        self._running = False
