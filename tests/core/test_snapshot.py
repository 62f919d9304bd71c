# tests/core/test_snapshot.py
"""
nmos6502.core.snapshotモジュールの単体テスト。
"""
import pytest
from nmos6502.core.state import CpuState
from nmos6502.core.errors import IllegalOpcodeError
from nmos6502.core.snapshot import Operation, Metadata, Snapshot
from nmos6502.transport.bus import BusAccess, BusAccessType

# @intent:test_suite 1命令実行の結果を記録する不変データ構造の検証。

class TestOperation:
    # @intent:test_case_init 既定値と opcode プロパティを検証します。
    def test_operation_defaults(self):
        op = Operation(opcode_hex="A9", mnemonic="LDA", operands=["#$10"], operand_bytes=[0x10], length=2)
        assert op.opcode == 0xA9
        assert op.address == 0
        assert op.mode is None
        assert op.effective_address is None
        assert op.value is None

    # @intent:test_case_immutability Operationが不変であることを検証します。
    def test_operation_immutability(self):
        op = Operation(opcode_hex="EA", mnemonic="NOP")
        with pytest.raises(AttributeError):
            op.mnemonic = "BRK"

class TestSnapshot:
    def _snapshot(self, **kwargs):
        return Snapshot(
            state=CpuState(pc=0x0200),
            operation=Operation(opcode_hex="EA", mnemonic="NOP"),
            metadata=Metadata(instruction_count=1),
            **kwargs,
        )

    # @intent:test_case_ok エラーが無いSnapshotは ok で raise_for_error が何もしないことを検証します。
    def test_ok_snapshot(self):
        snap = self._snapshot()
        assert snap.ok
        assert snap.bus_activity == []
        snap.raise_for_error()

    # @intent:test_case_error 格納されたエラーが raise_for_error で送出されることを検証します。
    def test_error_snapshot(self):
        err = IllegalOpcodeError(0xFF, 0x0300)
        snap = self._snapshot(error=err)
        assert not snap.ok
        with pytest.raises(IllegalOpcodeError) as excinfo:
            snap.raise_for_error()
        assert excinfo.value is err
        assert str(err) == "Illegal opcode $FF at $0300"

    # @intent:test_case_writes writes() が書き込みアクセスのみを返すことを検証します。
    def test_writes_filters_bus_activity(self):
        activity = [
            BusAccess(0x0200, 0x85, BusAccessType.READ),
            BusAccess(0x0010, 0x42, BusAccessType.WRITE, previous_data=0x00),
        ]
        snap = self._snapshot(bus_activity=activity)
        assert snap.writes() == [activity[1]]

    # @intent:test_case_immutability Snapshotが不変であることを検証します。
    def test_snapshot_immutability(self):
        snap = self._snapshot()
        with pytest.raises(AttributeError):
            snap.error = None
