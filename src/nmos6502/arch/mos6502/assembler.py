# src/nmos6502/arch/mos6502/assembler.py
"""
MOS 6502 2パスアセンブラ。

- ``$xx`` (2桁以下) はゼロページ、``$xxxx`` は常にアブソリュート
- ``>LBL`` はアブソリュートを強制する
- パス1で値が未確定のシンボルはアブソリュートとして扱い、パス間で命令長を固定する
- 疑似命令: ``.org``/``ORG``, ``.byte``/``DB``, ``.word``/``DW``, ``NAME = value``/``EQU``
"""
import logging
import re
from typing import Dict, List, Optional, Tuple

from nmos6502.common.types import SymbolMap, BinaryData
from nmos6502.core.errors import AssemblerError
from nmos6502.loader.assembler import BaseAssembler, SourceLine
from nmos6502.arch.mos6502.instructions.maps import OPCODE_MAP
from nmos6502.arch.mos6502.instructions.base import AddressingMode as M, OPERAND_LENGTH

logger = logging.getLogger(__name__)

# オペランドの書式から決まる (ゼロページ形, アブソリュート形) の組
_INDEX_FAMILIES = {
    "plain": (M.ZEROPAGE, M.ABSOLUTE),
    "x": (M.ZEROPAGE_X, M.ABSOLUTE_X),
    "y": (M.ZEROPAGE_Y, M.ABSOLUTE_Y),
}

_ZEROPAGE_MODES = {M.ZEROPAGE, M.ZEROPAGE_X, M.ZEROPAGE_Y, M.INDEXED_INDIRECT, M.INDIRECT_INDEXED}
_WORD_MODES = {M.ABSOLUTE, M.ABSOLUTE_X, M.ABSOLUTE_Y, M.INDIRECT}

_WIDE_HEX_RE = re.compile(r'^\$[0-9A-Fa-f]{3,}$')

class Mos6502Assembler(BaseAssembler):
    """
    MOS 6502 用のアセンブラ。assemble() は (シンボルマップ, [(アドレス, バイト)]) を返し、
    結果はそのまま Bus.load() に渡せる。
    """
    def __init__(self, origin: int = 0):
        super().__init__()
        self._origin = origin
        # ニーモニック -> {アドレッシングモード: オペコード} の逆引きマップ
        self._mnemonic_map: Dict[str, Dict[M, int]] = {}
        for opcode, (mnemonic, mode, _) in OPCODE_MAP.items():
            self._mnemonic_map.setdefault(mnemonic, {})[mode] = opcode

    def is_mnemonic(self, word: str) -> bool:
        return word.upper() in self._mnemonic_map

    # @intent:responsibility オペランドの書式を分類し、(書式, 式, アブソリュート強制) を返す。
    def _classify_operand(self, operand_str: str) -> Tuple[str, str, bool]:
        text = operand_str.strip()
        upper = text.upper().replace(" ", "")

        if not text:
            return "none", "", False
        if upper == "A":
            return "acc", "", False
        if text.startswith('#'):
            return "imm", text[1:], False
        if upper.startswith('(') and upper.endswith(',X)'):
            return "indx", text[1:text.upper().rindex(',')], False
        if upper.startswith('(') and upper.endswith('),Y'):
            return "indy", text[1:text.rindex(')')], False
        if upper.startswith('(') and upper.endswith(')'):
            return "ind", text[1:-1], False

        family = "plain"
        if upper.endswith(',X'):
            family, text = "x", text[:text.rindex(',')]
        elif upper.endswith(',Y'):
            family, text = "y", text[:text.rindex(',')]

        text = text.strip()
        force_abs = text.startswith('>')
        if force_abs:
            text = text[1:]
        return family, text, force_abs

    # @intent:responsibility ニーモニックとオペランドからアドレッシングモードを選択する。
    # @intent:pre-condition symbolsはその時点までに確定しているシンボルのみを含む。
    # @intent:post-condition 戻り値の値は未確定ならNone。
    def _select_mode(self, mnemonic: str, operand_str: str, symbols: SymbolMap,
                     strict: bool) -> Tuple[M, Optional[int]]:
        modes = self._mnemonic_map.get(mnemonic)
        if modes is None:
            raise AssemblerError(f"Unknown mnemonic: {mnemonic}")

        family, expr, force_abs = self._classify_operand(operand_str)

        if family == "none":
            for mode in (M.IMPLIED, M.ACCUMULATOR):
                if mode in modes:
                    return mode, None
            raise AssemblerError(f"{mnemonic} requires an operand")

        simple = {"acc": M.ACCUMULATOR, "imm": M.IMMEDIATE, "indx": M.INDEXED_INDIRECT,
                  "indy": M.INDIRECT_INDEXED, "ind": M.INDIRECT}
        if family in simple:
            mode = simple[family]
            if mode not in modes:
                raise AssemblerError(f"{mnemonic} does not support {mode.value} addressing")
            value = self._parse_val(expr, symbols, strict) if expr else None
            return mode, value

        value = self._parse_val(expr, symbols, strict)

        if M.RELATIVE in modes:
            if family != "plain":
                raise AssemblerError(f"{mnemonic} takes a branch target")
            return M.RELATIVE, value

        zp_mode, abs_mode = _INDEX_FAMILIES[family]
        prefer_zp = (not force_abs and value is not None and 0 <= value <= 0xFF
                     and not _WIDE_HEX_RE.match(expr.strip()))

        order = (zp_mode, abs_mode) if prefer_zp else (abs_mode, zp_mode)
        for mode in order:
            if mode in modes:
                return mode, value
        raise AssemblerError(f"{mnemonic} does not support {abs_mode.value} addressing")

    # @intent:responsibility 確定した値とモードから命令のバイト列を生成する。
    def _encode(self, mnemonic: str, mode: M, value: Optional[int], pc: int) -> List[int]:
        opcode = self._mnemonic_map[mnemonic][mode]

        if mode in (M.IMPLIED, M.ACCUMULATOR):
            return [opcode]
        if mode == M.RELATIVE:
            offset = value - ((pc + 2) & 0xFFFF)
            if not -128 <= offset <= 127:
                raise AssemblerError(f"Branch target out of range: ${value:04X} (offset {offset})")
            return [opcode, offset & 0xFF]
        if mode == M.IMMEDIATE:
            if not -128 <= value <= 0xFF:
                raise AssemblerError(f"Immediate value out of range: {value}")
            return [opcode, value & 0xFF]
        if mode in _ZEROPAGE_MODES:
            if not 0 <= value <= 0xFF:
                raise AssemblerError(f"Zero page address out of range: {value}")
            return [opcode, value]
        if not 0 <= value <= 0xFFFF:
            raise AssemblerError(f"Address out of range: {value}")
        return [opcode, value & 0xFF, (value >> 8) & 0xFF]

    # @intent:responsibility .byte / .word の引数を展開する。
    def _data_bytes(self, directive: str, operands: str, symbols: SymbolMap, strict: bool) -> List[Optional[int]]:
        width = 2 if directive in (".WORD", "DW") else 1
        out: List[Optional[int]] = []
        for arg in self._split_args(operands):
            if width == 1 and len(arg) >= 2 and arg[0] == arg[-1] and arg[0] in ('"', "'") \
                    and not (arg[0] == "'" and len(arg) == 3):
                out.extend(arg[1:-1].encode("ascii"))
                continue
            val = self._parse_val(arg, symbols, strict)
            if val is None:
                out.extend([None] * width)
            elif width == 1:
                if not -128 <= val <= 0xFF:
                    raise AssemblerError(f"Byte value out of range: {val}")
                out.append(val & 0xFF)
            else:
                if not -0x8000 <= val <= 0xFFFF:
                    raise AssemblerError(f"Word value out of range: {val}")
                out.extend([val & 0xFF, (val >> 8) & 0xFF])
        if not out:
            raise AssemblerError(f"{directive} requires at least one value")
        return out

    def assemble(self, lines: List[str]) -> Tuple[SymbolMap, BinaryData]:
        parsed = [self._parse_line(line, n) for n, line in enumerate(lines, start=1)]
        symbol_map: SymbolMap = {}
        plans: Dict[int, M] = {}

        # First pass: アドレスとシンボルの確定、命令長の固定
        pc = self._origin
        for src in parsed:
            try:
                pc = self._pass_one(src, pc, symbol_map, plans)
            except AssemblerError as e:
                raise AssemblerError(f"Line {src.line_no}: {e}") from e
        self._resolve_pending_equates(parsed, symbol_map)

        # Second pass: バイナリ生成
        binary_data: BinaryData = []
        pc = self._origin
        for src in parsed:
            try:
                pc = self._pass_two(src, pc, symbol_map, plans, binary_data)
            except AssemblerError as e:
                raise AssemblerError(f"Line {src.line_no}: {e}") from e

        logger.debug("Assembled %d bytes, %d symbols", len(binary_data), len(symbol_map))
        return symbol_map, binary_data

    # @intent:responsibility 後方のラベルに依存して未確定のまま残った等値定義を、値が増えなくなるまで繰り返し確定させます。
    def _resolve_pending_equates(self, parsed: List[SourceLine], symbols: SymbolMap) -> None:
        pending = [src for src in parsed if src.mnemonic == "=" and src.label not in symbols]
        while pending:
            remaining = []
            for src in pending:
                try:
                    val = self._parse_val(src.operands, symbols, strict=False)
                except AssemblerError as e:
                    raise AssemblerError(f"Line {src.line_no}: {e}") from e
                if val is None:
                    remaining.append(src)
                else:
                    symbols[src.label] = val
            if len(remaining) == len(pending):
                break
            pending = remaining

    def _pass_one(self, src: SourceLine, pc: int, symbols: SymbolMap, plans: Dict[int, M]) -> int:
        if src.mnemonic == "=":
            if src.label in symbols:
                raise AssemblerError(f"Duplicate symbol: {src.label}")
            val = self._parse_val(src.operands, symbols, strict=False)
            if val is not None:
                symbols[src.label] = val
            return pc

        if src.label:
            if src.label in symbols:
                raise AssemblerError(f"Duplicate symbol: {src.label}")
            symbols[src.label] = pc

        if not src.mnemonic:
            return pc
        if src.mnemonic in ("ORG", ".ORG"):
            origin = self._parse_val(src.operands, symbols, strict=False)
            if origin is None:
                raise AssemblerError(f"Origin must be known in the first pass: {src.operands}")
            return self._check_pc(origin)
        if src.mnemonic in (".BYTE", "DB", ".WORD", "DW"):
            return self._check_pc(pc + len(self._data_bytes(src.mnemonic, src.operands, symbols, strict=False)))

        mode, _ = self._select_mode(src.mnemonic, src.operands, symbols, strict=False)
        plans[src.line_no] = mode
        return self._check_pc(pc + 1 + OPERAND_LENGTH[mode])

    def _pass_two(self, src: SourceLine, pc: int, symbols: SymbolMap, plans: Dict[int, M],
                  binary_data: BinaryData) -> int:
        if src.mnemonic == "=":
            symbols[src.label] = self._parse_val(src.operands, symbols)
            return pc
        if not src.mnemonic:
            return pc
        if src.mnemonic in ("ORG", ".ORG"):
            return self._parse_val(src.operands, symbols)

        if src.mnemonic in (".BYTE", "DB", ".WORD", "DW"):
            data = self._data_bytes(src.mnemonic, src.operands, symbols, strict=True)
        else:
            mode = plans[src.line_no]
            _, value = self._select_mode(src.mnemonic, src.operands, symbols, strict=True)
            data = self._encode(src.mnemonic, mode, value, pc)

        for i, b in enumerate(data):
            binary_data.append(((pc + i) & 0xFFFF, b))
        return pc + len(data)

    @staticmethod
    def _check_pc(pc: int) -> int:
        if not 0 <= pc <= 0x10000:
            raise AssemblerError(f"Location counter out of range: {pc}")
        return pc
