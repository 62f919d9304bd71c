# tests/loader/test_assembler.py
"""
BaseAssembler の行解析と値の評価を検証します。
"""
import pytest
from nmos6502.core.errors import AssemblerError
from nmos6502.loader.assembler import BaseAssembler, SourceLine
from nmos6502.arch.mos6502.assembler import Mos6502Assembler

class NullAssembler(BaseAssembler):
    def assemble(self, lines):
        return {}, []

@pytest.fixture
def asm():
    return Mos6502Assembler()

def test_base_assembler_is_abstract():
    with pytest.raises(TypeError):
        BaseAssembler()

def test_assemble_source_splits_lines():
    class Recorder(BaseAssembler):
        def assemble(self, lines):
            self.lines = lines
            return {}, []
    recorder = Recorder()
    recorder.assemble_source("a\nb\n")
    assert recorder.lines == ["a", "b"]

@pytest.mark.parametrize("line, expected", [
    ("", SourceLine(1, None, None, "")),
    ("   ; only a comment", SourceLine(1, None, None, "")),
    ("loop:", SourceLine(1, "loop", None, "")),
    ("loop: dex", SourceLine(1, "loop", "DEX", "")),
    ("loop dex", SourceLine(1, "loop", "DEX", "")),
    ("    lda #$01 ; comment", SourceLine(1, None, "LDA", "#$01")),
    ("LDA #$01", SourceLine(1, None, "LDA", "#$01")),
    (".org $0200", SourceLine(1, None, ".ORG", "$0200")),
    ("VALUE = $10", SourceLine(1, "VALUE", "=", "$10")),
    ("VALUE equ 16", SourceLine(1, "VALUE", "=", "16")),
    ("msg: .byte \"x;y\"", SourceLine(1, "msg", ".BYTE", "\"x;y\"")),
])
def test_parse_line(asm, line, expected):
    assert asm._parse_line(line, 1) == expected

def test_column_one_word_is_label_without_mnemonic_table():
    # ニーモニックを知らない基底実装では、先頭カラムの語は常にラベル
    assert NullAssembler()._parse_line("NOP", 3) == SourceLine(3, "NOP", None, "")

def test_split_args_respects_quotes():
    assert BaseAssembler._split_args('1, "a,b", \',\'') == ["1", '"a,b"', "','"]

@pytest.mark.parametrize("text, value", [
    ("$FF", 0xFF),
    ("0x1234", 0x1234),
    ("%1001", 9),
    ("0FFh", 0xFF),
    ("42", 42),
    ("'A'", 0x41),
    ("' '", 0x20),
    ("LABEL", 0x0300),
    ("LABEL+2", 0x0302),
    ("LABEL-$100", 0x0200),
    ("-5", -5),
    ("1+2+3", 6),
])
def test_parse_val(asm, text, value):
    assert asm._parse_val(text, {"LABEL": 0x0300}) == value

def test_parse_val_unknown_symbol(asm):
    assert asm._parse_val("later+1", {}, strict=False) is None
    with pytest.raises(AssemblerError, match="Undefined symbol: later"):
        asm._parse_val("later+1", {})

@pytest.mark.parametrize("text", ["$G1", "", "12abc", "%2"])
def test_parse_val_invalid(asm, text):
    with pytest.raises(AssemblerError):
        asm._parse_val(text, {})
