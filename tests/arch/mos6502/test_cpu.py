# tests/arch/mos6502/test_cpu.py
"""
Mos6502Cpu の電源投入、ステップ実行、未定義オペコードの検証。
"""
import pytest
from nmos6502.transport.bus import Bus
from nmos6502.core.errors import IllegalOpcodeError
from nmos6502.arch.mos6502.cpu import Mos6502Cpu
from nmos6502.arch.mos6502.state import Mos6502CpuState
from nmos6502.arch.mos6502.instructions.maps import OPCODE_MAP

@pytest.fixture
def cpu():
    bus = Bus.flat()
    bus.load(0xFFFC, [0x00, 0x02])  # リセットベクタ -> $0200
    return Mos6502Cpu(bus)

def load_program(cpu, program, address=0x0200):
    cpu.bus.load(address, program)
    cpu.restore_state(cpu.get_state().replace(pc=address))

# @intent:test_case_power_up A=X=Y=0, P=I, SP=$FD, PCはリセットベクタから読み込まれることを検証します。
def test_power_up_state(cpu):
    state = cpu.get_state()
    assert isinstance(state, Mos6502CpuState)
    assert (state.a, state.x, state.y) == (0, 0, 0)
    assert state.p == Mos6502CpuState.I_FLAG
    assert state.sp == 0xFD
    assert state.pc == 0x0200

# @intent:test_case_reset reset()がリセットベクタを読み直し、レジスタを初期化することを検証します。
def test_reset_reloads_vector(cpu):
    load_program(cpu, [0xA9, 0x42])
    cpu.step()
    cpu.bus.load(0xFFFC, [0x34, 0x12])

    cpu.reset()

    state = cpu.get_state()
    assert state.pc == 0x1234
    assert state.a == 0
    assert cpu.instruction_count == 0

# @intent:test_case_reset_quiet 電源投入時のベクタ読み出しはバスのアクティビティログに残らないことを検証します。
def test_reset_does_not_log_bus_activity(cpu):
    cpu.reset()
    assert cpu.bus.get_and_clear_activity_log() == []

# @intent:test_case_step LDA #$55 で A が設定され、PCが命令長だけ進むことを検証します。
def test_lda_immediate(cpu):
    load_program(cpu, [0xA9, 0x55])
    snap = cpu.step()

    state = cpu.get_state()
    assert state.a == 0x55
    assert not state.flag_z
    assert not state.flag_n
    assert state.pc == 0x0202
    assert snap.operation.mnemonic == "LDA"
    assert snap.operation.operands == ["#$55"]
    assert snap.operation.length == 2

# @intent:test_case_adc ADC $50+$50（キャリー無し）は $A0, N=1, V=1, C=0 となることを検証します。
def test_adc_overflow_example(cpu):
    load_program(cpu, [0xA9, 0x50, 0x69, 0x50])
    cpu.step()
    cpu.step()

    state = cpu.get_state()
    assert state.a == 0xA0
    assert state.flag_n
    assert state.flag_v
    assert not state.flag_c
    assert not state.flag_z

# @intent:test_case_decimal Dフラグは保持されるが、ADCは二進演算のままであることを検証します。
def test_decimal_flag_keeps_binary_arithmetic(cpu):
    # SED; CLC; LDA #$09; ADC #$01
    load_program(cpu, [0xF8, 0x18, 0xA9, 0x09, 0x69, 0x01])
    for _ in range(4):
        cpu.step()

    state = cpu.get_state()
    assert state.flag_d
    assert state.a == 0x0A

# @intent:test_case_illegal 未定義オペコード$02はエラーとして返され、レジスタもメモリも変化しないことを検証します。
def test_illegal_opcode_does_not_mutate(cpu):
    load_program(cpu, [0x02, 0xFF])
    cpu.restore_state(cpu.get_state().replace(a=0x12, x=0x34, y=0x56, p=0xC3))
    before_state = cpu.get_state()
    before_memory = [cpu.bus.peek(a) for a in range(0x0000, 0x0300)]

    snap = cpu.step()

    assert not snap.ok
    assert isinstance(snap.error, IllegalOpcodeError)
    assert snap.error.opcode == 0x02
    assert snap.error.address == 0x0200
    assert snap.writes() == []
    assert cpu.get_state() == before_state
    assert [cpu.bus.peek(a) for a in range(0x0000, 0x0300)] == before_memory

    # 何度stepしても同じ場所で止まる
    again = cpu.step()
    assert not again.ok
    assert cpu.get_state().pc == 0x0200

# @intent:test_case_illegal_all 文書化されていない全てのオペコードが未定義として扱われることを検証します。
def test_every_undocumented_opcode_is_illegal(cpu):
    undocumented = [op for op in range(256) if op not in OPCODE_MAP]
    assert len(undocumented) == 256 - 151

    for opcode in undocumented:
        load_program(cpu, [opcode])
        snap = cpu.step()
        assert snap.error is not None, f"${opcode:02X} should be illegal"
        assert snap.error.opcode == opcode

# @intent:test_case_count 命令カウンタは成功した命令のみを数えることを検証します。
def test_instruction_count(cpu):
    load_program(cpu, [0xEA, 0xEA, 0x02])
    cpu.step()
    cpu.step()
    cpu.step()
    assert cpu.instruction_count == 2

# @intent:test_case_pc_wrap PCは$FFFFから$0000へラップすることを検証します。
def test_pc_wraps_at_end_of_memory(cpu):
    load_program(cpu, [0xEA], address=0xFFFF)
    cpu.step()
    assert cpu.get_state().pc == 0x0000

# @intent:test_case_observers レジスタマップ、フラグ状態、レイアウトが現在の状態を反映することを検証します。
def test_register_and_flag_views(cpu):
    cpu.restore_state(cpu.get_state().replace(a=0x01, x=0x02, y=0x03, p=0x81))
    assert cpu.get_register_map() == {"A": 0x01, "X": 0x02, "Y": 0x03, "PC": 0x0200, "S": 0xFD, "P": 0x81}
    flags = cpu.get_flag_state()
    assert flags["N"] and flags["C"]
    assert not flags["Z"] and not flags["I"]
    names = [r.name for group in cpu.get_register_layout() for r in group.registers]
    assert names == ["A", "X", "Y", "P", "PC", "S"]

# @intent:test_case_disassemble CPU経由の逆アセンブルがバスを汚さないことを検証します。
def test_cpu_disassemble(cpu):
    load_program(cpu, [0xA9, 0x01, 0x8D, 0x00, 0x03])
    cpu.bus.get_and_clear_activity_log()
    lines = cpu.disassemble(0x0200, 5)
    assert lines == [(0x0200, "A9 01", "LDA #$01"), (0x0202, "8D 00 03", "STA $0300")]
    assert cpu.bus.get_and_clear_activity_log() == []

# @intent:test_case_mmio 独自のデバイスを介したメモリマップドI/Oが、コアの変更なしに動作することを検証します。
def test_memory_mapped_output_device():
    from nmos6502.transport.bus import Device, RAM

    class Console(Device):
        def __init__(self):
            self.out = bytearray()
        def read(self, address):
            return 0
        def write(self, address, data):
            self.out.append(data)

    console = Console()
    bus = Bus()
    bus.register_device(0x0000, 0xEFFF, RAM(0xF000))
    bus.register_device(0xF000, 0xF000, console)
    bus.register_device(0xF001, 0xFFFF, RAM(0x0FFF))
    bus.load(0xFFFC, [0x00, 0x02])
    # LDA #'H'; STA $F000; LDA #'i'; STA $F000
    bus.load(0x0200, [0xA9, 0x48, 0x8D, 0x00, 0xF0, 0xA9, 0x69, 0x8D, 0x00, 0xF0])

    cpu = Mos6502Cpu(bus)
    for _ in range(4):
        cpu.step()
    assert console.out == b"Hi"
