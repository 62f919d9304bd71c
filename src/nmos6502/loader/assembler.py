# nmos6502/loader/assembler.py
"""
アセンブラの共通基盤。
行の分解、数値・シンボル・簡単な式の評価を提供します。
アーキテクチャ固有のアセンブラ（nmos6502.arch.mos6502.assembler）から利用されます。
"""
import re
from abc import ABC, abstractmethod
from typing import List, NamedTuple, Optional, Tuple

from nmos6502.common.types import SymbolMap, BinaryData
from nmos6502.core.errors import AssemblerError

_SYMBOL_RE = re.compile(r'^[A-Za-z_.][A-Za-z0-9_.]*$')
_TERM_SPLIT_RE = re.compile(r'([+-])')

# @intent:data_structure 1行分の解析結果。
class SourceLine(NamedTuple):
    line_no: int
    label: Optional[str]
    mnemonic: Optional[str]
    operands: str

# @intent:responsibility アセンブラの共通インターフェースを定義します。
class BaseAssembler(ABC):
    # 先頭カラムに置かれていても、ラベルではなく命令/疑似命令として扱う語
    DIRECTIVES = {"ORG", ".ORG", ".BYTE", "DB", ".WORD", "DW", "EQU"}

    @abstractmethod
    def assemble(self, lines: List[str]) -> Tuple[SymbolMap, BinaryData]:
        """
        アセンブリソースを行単位で解析し、シンボルマップとバイナリデータを返します。
        """
        pass

    # @intent:responsibility ソース文字列全体をアセンブルします。
    def assemble_source(self, source: str) -> Tuple[SymbolMap, BinaryData]:
        return self.assemble(source.splitlines())

    # @intent:responsibility アーキテクチャ固有のニーモニックかどうかを判定します。
    def is_mnemonic(self, word: str) -> bool:
        return False

    # @intent:responsibility 引用符の外にある ';' 以降をコメントとして取り除きます。
    @staticmethod
    def _strip_comment(line: str) -> str:
        quote = None
        for i, ch in enumerate(line):
            if quote:
                if ch == quote:
                    quote = None
            elif ch in ('"', "'"):
                quote = ch
            elif ch == ';':
                return line[:i]
        return line

    # @intent:responsibility 1行を (ラベル, ニーモニック, オペランド) に分解します。
    # @intent:note ラベルは "name:" 形式か、先頭カラムから始まる語。
    #              "NAME = value" と "NAME EQU value" は mnemonic "=" として返します。
    def _parse_line(self, line: str, line_no: int = 0) -> SourceLine:
        raw = self._strip_comment(line).rstrip()
        if not raw.strip():
            return SourceLine(line_no, None, None, "")

        starts_in_col1 = not raw[0].isspace()
        text = raw.strip()

        m = re.match(r'^([A-Za-z_.][A-Za-z0-9_.]*)\s*(=|\s[Ee][Qq][Uu]\s)\s*(.*)$', text)
        if m:
            return SourceLine(line_no, m.group(1), "=", m.group(3).strip())

        label = None
        m = re.match(r'^([A-Za-z_.][A-Za-z0-9_.]*):\s*(.*)$', text)
        if m:
            label, text = m.group(1), m.group(2)
        elif starts_in_col1:
            first = re.split(r'\s+', text, maxsplit=1)[0]
            if first.upper() not in self.DIRECTIVES and not self.is_mnemonic(first):
                label = first
                text = text[len(first):].strip()

        if not text:
            return SourceLine(line_no, label, None, "")

        parts = re.split(r'\s+', text, maxsplit=1)
        mnemonic = parts[0].upper()
        operands = parts[1].strip() if len(parts) > 1 else ""
        return SourceLine(line_no, label, mnemonic, operands)

    # @intent:responsibility 引用符内のカンマを無視して引数リストを分割します。
    @staticmethod
    def _split_args(operands: str) -> List[str]:
        args, current, quote = [], [], None
        for ch in operands:
            if quote:
                current.append(ch)
                if ch == quote:
                    quote = None
            elif ch in ('"', "'"):
                quote = ch
                current.append(ch)
            elif ch == ',':
                args.append("".join(current).strip())
                current = []
            else:
                current.append(ch)
        args.append("".join(current).strip())
        return [a for a in args if a]

    # @intent:responsibility 単項の値（数値リテラル、文字リテラル、シンボル）を評価します。
    # @intent:post-condition 未定義シンボルの場合、strictならAssemblerError、そうでなければNoneを返します。
    def _parse_term(self, term: str, symbol_map: SymbolMap, strict: bool = True) -> Optional[int]:
        term = term.strip()
        if not term:
            raise AssemblerError("Missing value")
        try:
            if term.startswith('$'):
                return int(term[1:], 16)
            if term.lower().startswith('0x'):
                return int(term[2:], 16)
            if term.startswith('%'):
                return int(term[1:], 2)
            if re.match(r'^[0-9A-Fa-f]+[hH]$', term) and term[0].isdigit():
                return int(term[:-1], 16)
            if term.isdigit():
                return int(term)
        except ValueError:
            raise AssemblerError(f"Invalid number: {term}") from None

        if len(term) == 3 and term[0] == term[2] == "'":
            return ord(term[1])

        if not _SYMBOL_RE.match(term):
            raise AssemblerError(f"Invalid value: {term}")
        if term in symbol_map:
            return symbol_map[term]
        if strict:
            raise AssemblerError(f"Undefined symbol: {term}")
        return None

    # @intent:responsibility "+"/"-" で連結された式を評価します。
    def _parse_val(self, val_str: str, symbol_map: SymbolMap, strict: bool = True) -> Optional[int]:
        if re.match(r"^\s*'.'\s*$", val_str):
            return self._parse_term(val_str, symbol_map, strict)
        tokens = [t for t in _TERM_SPLIT_RE.split(val_str.strip()) if t.strip()]
        total, sign, pending = 0, 1, False
        for tok in tokens:
            tok = tok.strip()
            if tok in ('+', '-'):
                sign = -sign if tok == '-' else sign
                continue
            val = self._parse_term(tok, symbol_map, strict)
            if val is None:
                return None
            total += sign * val
            sign, pending = 1, True
        if not pending:
            raise AssemblerError(f"Invalid value: {val_str}")
        return total
