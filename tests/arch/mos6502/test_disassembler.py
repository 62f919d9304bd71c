# tests/arch/mos6502/test_disassembler.py
import pytest
from nmos6502.transport.bus import Bus
from nmos6502.arch.mos6502.disassembler import disassemble, disassemble_instruction

@pytest.mark.parametrize("window, text, length", [
    ([0xEA], "NOP", 1),
    ([0x0A], "ASL A", 1),
    ([0xA9, 0x01], "LDA #$01", 2),
    ([0xA5, 0x10], "LDA $10", 2),
    ([0xB5, 0x10], "LDA $10,X", 2),
    ([0xB6, 0x10], "LDX $10,Y", 2),
    ([0xAD, 0x34, 0x12], "LDA $1234", 3),
    ([0xBD, 0x34, 0x12], "LDA $1234,X", 3),
    ([0xB9, 0x34, 0x12], "LDA $1234,Y", 3),
    ([0x6C, 0x00, 0x03], "JMP ($0300)", 3),
    ([0xA1, 0x20], "LDA ($20,X)", 2),
    ([0xB1, 0x20], "LDA ($20),Y", 2),
    ([0x00], "BRK", 1),
])
def test_formats(window, text, length):
    assert disassemble_instruction(window, 0x0200) == (text, length)

# @intent:test_case_relative 相対分岐は分岐先と符号付きオフセットを併記することを検証します。
def test_relative_forward():
    assert disassemble_instruction([0xD0, 0x05], 0x0200) == ("BNE $0207 ; +05", 2)

def test_relative_backward():
    assert disassemble_instruction([0xF0, 0xFD], 0x0200) == ("BEQ $01FF ; -03", 2)

def test_relative_extremes():
    assert disassemble_instruction([0x10, 0x80], 0x0200)[0] == "BPL $0182 ; -80"
    assert disassemble_instruction([0x10, 0x7F], 0x0200)[0] == "BPL $0281 ; +7F"

# @intent:test_case_illegal 未定義オペコードは1バイトのデータとして表示されることを検証します。
def test_illegal_opcode():
    assert disassemble_instruction([0x02, 0xA9, 0x01], 0x0200) == ("DB $02 ; illegal instruction", 1)

def test_short_window_is_zero_padded():
    assert disassemble_instruction([0xAD], 0x0200) == ("LDA $0000", 3)

def test_disassemble_range():
    bus = Bus.flat()
    bus.load(0x0200, [0xA9, 0x01, 0x02, 0x8D, 0x00, 0x40, 0xD0, 0xF8])
    listing = disassemble(bus, 0x0200, 8)
    assert listing == [
        (0x0200, "A9 01", "LDA #$01"),
        (0x0202, "02", "DB $02 ; illegal instruction"),
        (0x0203, "8D 00 40", "STA $4000"),
        (0x0206, "D0 F8", "BNE $0200 ; -08"),
    ]

# @intent:test_case_no_side_effects 逆アセンブルはバスのアクティビティログに何も残さないことを検証します。
def test_disassemble_does_not_touch_activity_log():
    bus = Bus.flat()
    bus.load(0x0200, [0xA9, 0x01])
    disassemble(bus, 0x0200, 2)
    assert bus.get_and_clear_activity_log() == []

def test_disassemble_wraps_at_top_of_memory():
    bus = Bus.flat()
    bus.load(0xFFFF, 0xAD)
    bus.load(0x0000, [0x34, 0x12])
    assert disassemble(bus, 0xFFFF, 1) == [(0xFFFF, "AD 34 12", "LDA $1234")]
