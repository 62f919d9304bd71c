# tests/arch/mos6502/test_instructions_alu.py
"""
算術論理演算命令 (ADC/SBC/比較/論理/シフト/インクリメント) の検証。
"""
import pytest
from nmos6502.transport.bus import Bus
from nmos6502.arch.mos6502.cpu import Mos6502Cpu
from nmos6502.arch.mos6502.state import Mos6502CpuState
from nmos6502.arch.mos6502.instructions.flags import (
    update_nz, update_nzc_compare, add_with_carry, subtract_with_borrow, to_signed,
)

C, Z, I, D, V, N = 0x01, 0x02, 0x04, 0x08, 0x40, 0x80

@pytest.fixture
def cpu():
    bus = Bus.flat()
    bus.load(0xFFFC, [0x00, 0x02])
    return Mos6502Cpu(bus)

def run(cpu, program, steps=1, **regs):
    cpu.bus.load(0x0200, program)
    cpu.restore_state(cpu.get_state().replace(pc=0x0200, **regs))
    snap = None
    for _ in range(steps):
        snap = cpu.step()
    return snap

# --- Flag helpers ---

# @intent:test_case_nz 全ての8ビット結果について N=bit7, Z=(r==0) となることを検証します。
def test_update_nz_for_every_byte():
    state = Mos6502CpuState(p=0)
    for r in range(256):
        new_state = update_nz(state, r)
        assert new_state.flag_n == bool(r & 0x80)
        assert new_state.flag_z == (r == 0)

# @intent:test_case_compare 全てのレジスタ/オペランドの組について C は reg >= operand のときだけ立つことを検証します。
def test_compare_carry_for_all_byte_pairs():
    state = Mos6502CpuState(p=0)
    for reg in range(256):
        for mem in range(256):
            result = update_nzc_compare(state, reg, mem)
            assert result.flag_c == (reg >= mem)
            assert result.flag_z == (reg == mem)
            assert result.flag_n == bool((reg - mem) & 0x80)

# @intent:test_case_adc_matrix ADCのC, Vが幅を広げた演算規則に一致することを検証します。
@pytest.mark.parametrize("a, m, carry_in, result, c, v", [
    (0x50, 0x50, 0, 0xA0, False, True),
    (0x50, 0x10, 0, 0x60, False, False),
    (0x50, 0xD0, 0, 0x20, True, False),
    (0xD0, 0x90, 0, 0x60, True, True),
    (0xFF, 0x01, 0, 0x00, True, False),
    (0xFF, 0x00, 1, 0x00, True, False),
    (0x7F, 0x00, 1, 0x80, False, True),
    (0x80, 0xFF, 0, 0x7F, True, True),
])
def test_add_with_carry_matrix(a, m, carry_in, result, c, v):
    state = add_with_carry(Mos6502CpuState(a=a, p=C if carry_in else 0), m)
    assert state.a == result
    assert state.flag_c == c
    assert state.flag_v == v
    assert state.flag_n == bool(result & 0x80)
    assert state.flag_z == (result == 0)

# @intent:test_case_sbc_matrix SBCは A - M - (1 - C) を計算し、借りが無いときCを立てることを検証します。
@pytest.mark.parametrize("a, m, carry_in, result, c, v", [
    (0x05, 0x03, 1, 0x02, True, False),
    (0x05, 0x03, 0, 0x01, True, False),
    (0x03, 0x03, 1, 0x00, True, False),
    (0x03, 0x05, 1, 0xFE, False, False),
    (0x50, 0xB0, 1, 0xA0, False, True),
    (0xD0, 0x70, 1, 0x60, True, True),
    (0x00, 0x00, 0, 0xFF, False, False),
    (0x80, 0x01, 1, 0x7F, True, True),
])
def test_subtract_with_borrow_matrix(a, m, carry_in, result, c, v):
    state = subtract_with_borrow(Mos6502CpuState(a=a, p=C if carry_in else 0), m)
    assert state.a == result
    assert state.flag_c == c
    assert state.flag_v == v
    assert state.flag_n == bool(result & 0x80)
    assert state.flag_z == (result == 0)

# @intent:test_case_adc_rule ADC/SBC の C, V を全入力について9ビット規則と照合します（代表的な刻みで）。
def test_adc_sbc_against_widened_rule():
    for a in range(0, 256, 7):
        for m in range(0, 256, 11):
            for carry_in in (0, 1):
                s = add_with_carry(Mos6502CpuState(a=a, p=carry_in), m)
                total = a + m + carry_in
                signed = to_signed(a) + to_signed(m) + carry_in
                assert s.a == total & 0xFF
                assert s.flag_c == (total > 0xFF)
                assert s.flag_v == (not -128 <= signed <= 127)

                s = subtract_with_borrow(Mos6502CpuState(a=a, p=carry_in), m)
                diff = a - m - (1 - carry_in)
                signed = to_signed(a) - to_signed(m) - (1 - carry_in)
                assert s.a == diff & 0xFF
                assert s.flag_c == (diff >= 0)
                assert s.flag_v == (not -128 <= signed <= 127)

# --- Through the CPU ---

def test_adc_absolute_reads_memory(cpu):
    cpu.bus.load(0x1234, 0x22)
    run(cpu, [0x6D, 0x34, 0x12], a=0x11, p=0)  # ADC $1234
    assert cpu.get_state().a == 0x33

def test_sbc_immediate(cpu):
    run(cpu, [0xE9, 0x01], a=0x00, p=C)  # SBC #$01
    state = cpu.get_state()
    assert state.a == 0xFF
    assert not state.flag_c
    assert state.flag_n

@pytest.mark.parametrize("program, reg", [
    ([0xC9, 0x40], "a"),  # CMP #$40
    ([0xE0, 0x40], "x"),  # CPX #$40
    ([0xC0, 0x40], "y"),  # CPY #$40
])
def test_compare_instructions(cpu, program, reg):
    run(cpu, program, **{reg: 0x40})
    state = cpu.get_state()
    assert state.flag_c and state.flag_z and not state.flag_n
    assert getattr(state, reg) == 0x40  # 比較はレジスタを変更しない

def test_cmp_less_than(cpu):
    run(cpu, [0xC9, 0x20], a=0x10)
    state = cpu.get_state()
    assert not state.flag_c
    assert not state.flag_z
    assert state.flag_n  # $10 - $20 = $F0

def test_and_ora_eor(cpu):
    run(cpu, [0x29, 0x0F], a=0xF5)  # AND #$0F
    assert cpu.get_state().a == 0x05
    run(cpu, [0x09, 0x80], a=0x01)  # ORA #$80
    assert cpu.get_state().a == 0x81
    assert cpu.get_state().flag_n
    run(cpu, [0x49, 0xFF], a=0xFF)  # EOR #$FF
    assert cpu.get_state().a == 0x00
    assert cpu.get_state().flag_z

# @intent:test_case_bit BITのZはメモリ値ではなく A & M で決まり、N, V はメモリ値のbit7, bit6であることを検証します。
def test_bit_uses_a_and_m_for_zero(cpu):
    cpu.bus.load(0x0010, 0xC0)
    run(cpu, [0x24, 0x10], a=0x01, p=0)  # BIT $10
    state = cpu.get_state()
    assert state.flag_n and state.flag_v and state.flag_z
    assert state.a == 0x01

    cpu.bus.load(0x1000, 0x01)
    run(cpu, [0x2C, 0x00, 0x10], a=0x01, p=N | V)  # BIT $1000
    state = cpu.get_state()
    assert not state.flag_n and not state.flag_v and not state.flag_z

# @intent:test_case_shift アキュムレータ形のシフト/ローテートとキャリーの出入りを検証します。
@pytest.mark.parametrize("opcode, a, carry_in, result, carry_out", [
    (0x0A, 0x81, 0, 0x02, True),   # ASL A
    (0x0A, 0x40, 1, 0x80, False),  # ASL A (キャリーは入らない)
    (0x4A, 0x01, 0, 0x00, True),   # LSR A
    (0x4A, 0x80, 1, 0x40, False),  # LSR A
    (0x2A, 0x80, 1, 0x01, True),   # ROL A
    (0x2A, 0x40, 0, 0x80, False),  # ROL A
    (0x6A, 0x01, 1, 0x80, True),   # ROR A
    (0x6A, 0x02, 0, 0x01, False),  # ROR A
])
def test_accumulator_shifts(cpu, opcode, a, carry_in, result, carry_out):
    snap = run(cpu, [opcode], a=a, p=C if carry_in else 0)
    state = cpu.get_state()
    assert state.a == result
    assert state.flag_c == carry_out
    assert state.flag_n == bool(result & 0x80)
    assert state.flag_z == (result == 0)
    assert snap.operation.operands == ["A"]
    assert snap.writes() == []

# @intent:test_case_rmw メモリ形のシフトは同じ変換を行い、結果をメモリへ書き戻すことを検証します。
def test_memory_shift_writes_back(cpu):
    cpu.bus.load(0x0010, 0x40)
    snap = run(cpu, [0x06, 0x10], a=0x00, p=0)  # ASL $10
    assert cpu.bus.peek(0x0010) == 0x80
    state = cpu.get_state()
    assert state.flag_n and not state.flag_c
    assert state.a == 0x00
    assert [(w.address, w.data, w.previous_data) for w in snap.writes()] == [(0x0010, 0x80, 0x40)]

def test_ror_memory_absolute_x(cpu):
    cpu.bus.load(0x1235, 0x01)
    run(cpu, [0x7E, 0x34, 0x12], x=0x01, p=0)  # ROR $1234,X
    assert cpu.bus.peek(0x1235) == 0x00
    assert cpu.get_state().flag_c
    assert cpu.get_state().flag_z

def test_inc_dec_memory_wrap(cpu):
    cpu.bus.load(0x0020, 0xFF)
    run(cpu, [0xE6, 0x20])  # INC $20
    assert cpu.bus.peek(0x0020) == 0x00
    assert cpu.get_state().flag_z

    run(cpu, [0xCE, 0x20, 0x00])  # DEC $0020
    assert cpu.bus.peek(0x0020) == 0xFF
    assert cpu.get_state().flag_n

@pytest.mark.parametrize("opcode, reg, before, after", [
    (0xE8, "x", 0xFF, 0x00),  # INX
    (0xCA, "x", 0x00, 0xFF),  # DEX
    (0xC8, "y", 0x7F, 0x80),  # INY
    (0x88, "y", 0x01, 0x00),  # DEY
])
def test_register_increment_decrement(cpu, opcode, reg, before, after):
    run(cpu, [opcode], **{reg: before})
    state = cpu.get_state()
    assert getattr(state, reg) == after
    assert state.flag_z == (after == 0)
    assert state.flag_n == bool(after & 0x80)
