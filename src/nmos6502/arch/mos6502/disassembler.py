# src/nmos6502/arch/mos6502/disassembler.py
"""
MOS 6502 逆アセンブラ。

CPUの状態に依存せず、命令バイト列だけからテキストを組み立てる。
"""
from typing import List, Sequence, Tuple
from nmos6502.transport.bus import Bus
from nmos6502.arch.mos6502.instructions.maps import OPCODE_MAP
from nmos6502.arch.mos6502.instructions.base import (
    AddressingMode, OPERAND_LENGTH, format_operand, sign_extend,
)

MAX_INSTRUCTION_LENGTH = 3

# @intent:responsibility 最大3バイトの窓から1命令を逆アセンブルし、(テキスト, 命令長) を返す。
# @intent:pre-condition windowの先頭がオペコード。不足するバイトは0として扱う。
def disassemble_instruction(window: Sequence[int], address: int) -> Tuple[str, int]:
    """
    相対分岐は「分岐先 ; 符号付きオフセット」の形で表示する。
    例: ``BNE $0200 ; -05``

    未定義オペコードは ``DB $02 ; illegal instruction`` （長さ1）になる。
    """
    instr = list(window[:MAX_INSTRUCTION_LENGTH]) + [0] * (MAX_INSTRUCTION_LENGTH - len(window))
    opcode = instr[0]
    entry = OPCODE_MAP.get(opcode)

    if entry is None:
        return f"DB ${opcode:02X} ; illegal instruction", 1

    mnemonic, mode, _ = entry
    length = 1 + OPERAND_LENGTH[mode]
    operand_bytes = instr[1:length]
    next_pc = (address + length) & 0xFFFF

    op_str = format_operand(mode, operand_bytes, next_pc)
    if mode == AddressingMode.RELATIVE:
        offset = sign_extend(operand_bytes[0])
        sign = "-" if offset < 0 else "+"
        op_str += f" ; {sign}{abs(offset):02X}"

    return f"{mnemonic} {op_str}".strip(), length

# @intent:responsibility 指定されたメモリ範囲を逆アセンブルする。
# @intent:note peekを使うため、バスのアクティビティログやCPUの状態には影響しない。
def disassemble(bus: Bus, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
    """
    メモリを解析し、(アドレス, HEX, ニーモニック) のリストを返す。
    """
    results = []
    current_addr = start_addr
    end_addr = start_addr + length

    while current_addr < end_addr:
        addr = current_addr & 0xFFFF
        window = [bus.peek((addr + i) & 0xFFFF) for i in range(MAX_INSTRUCTION_LENGTH)]
        text, instr_len = disassemble_instruction(window, addr)

        hex_str = " ".join(f"{b:02X}" for b in window[:instr_len])
        results.append((addr, hex_str, text))
        current_addr += instr_len

    return results
