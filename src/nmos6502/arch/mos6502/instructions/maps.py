# src/nmos6502/arch/mos6502/instructions/maps.py
"""
MOS 6502 命令マップとデコード/実行ロジック。

OPCODE_MAP は文書化された151個のオペコードから
(ニーモニック, アドレッシングモード, 実行関数) への全写像。
ここに無いオペコードは未定義であり、NOP等への読み替えは行わない。
"""
from typing import Callable, Dict, Tuple

from nmos6502.transport.bus import Bus
from nmos6502.core.errors import IllegalOpcodeError
from nmos6502.core.snapshot import Operation
from nmos6502.arch.mos6502.state import Mos6502CpuState
from nmos6502.arch.mos6502.instructions import base, load, alu, control
from nmos6502.arch.mos6502.instructions.base import AddressingMode as M, AddressingResult

# Execution Function Type
ExecFunc = Callable[[Mos6502CpuState, Bus, AddressingResult], Mos6502CpuState]

# Opcode Entry: (Mnemonic, Addressing Mode, Execution Function)
OpcodeEntry = Tuple[str, M, ExecFunc]

OPCODE_MAP: Dict[int, OpcodeEntry] = {
    # --- Load/Store/Transfer ---
    0xA9: ("LDA", M.IMMEDIATE, load.lda),
    0xA5: ("LDA", M.ZEROPAGE, load.lda),
    0xB5: ("LDA", M.ZEROPAGE_X, load.lda),
    0xAD: ("LDA", M.ABSOLUTE, load.lda),
    0xBD: ("LDA", M.ABSOLUTE_X, load.lda),
    0xB9: ("LDA", M.ABSOLUTE_Y, load.lda),
    0xA1: ("LDA", M.INDEXED_INDIRECT, load.lda),
    0xB1: ("LDA", M.INDIRECT_INDEXED, load.lda),

    0xA2: ("LDX", M.IMMEDIATE, load.ldx),
    0xA6: ("LDX", M.ZEROPAGE, load.ldx),
    0xB6: ("LDX", M.ZEROPAGE_Y, load.ldx),
    0xAE: ("LDX", M.ABSOLUTE, load.ldx),
    0xBE: ("LDX", M.ABSOLUTE_Y, load.ldx),

    0xA0: ("LDY", M.IMMEDIATE, load.ldy),
    0xA4: ("LDY", M.ZEROPAGE, load.ldy),
    0xB4: ("LDY", M.ZEROPAGE_X, load.ldy),
    0xAC: ("LDY", M.ABSOLUTE, load.ldy),
    0xBC: ("LDY", M.ABSOLUTE_X, load.ldy),

    0x85: ("STA", M.ZEROPAGE, load.sta),
    0x95: ("STA", M.ZEROPAGE_X, load.sta),
    0x8D: ("STA", M.ABSOLUTE, load.sta),
    0x9D: ("STA", M.ABSOLUTE_X, load.sta),
    0x99: ("STA", M.ABSOLUTE_Y, load.sta),
    0x81: ("STA", M.INDEXED_INDIRECT, load.sta),
    0x91: ("STA", M.INDIRECT_INDEXED, load.sta),

    0x86: ("STX", M.ZEROPAGE, load.stx),
    0x96: ("STX", M.ZEROPAGE_Y, load.stx),
    0x8E: ("STX", M.ABSOLUTE, load.stx),

    0x84: ("STY", M.ZEROPAGE, load.sty),
    0x94: ("STY", M.ZEROPAGE_X, load.sty),
    0x8C: ("STY", M.ABSOLUTE, load.sty),

    0xAA: ("TAX", M.IMPLIED, load.tax),
    0xA8: ("TAY", M.IMPLIED, load.tay),
    0x8A: ("TXA", M.IMPLIED, load.txa),
    0x98: ("TYA", M.IMPLIED, load.tya),
    0x9A: ("TXS", M.IMPLIED, load.txs),
    0xBA: ("TSX", M.IMPLIED, load.tsx),

    # --- ALU Operations ---
    0x69: ("ADC", M.IMMEDIATE, alu.adc),
    0x65: ("ADC", M.ZEROPAGE, alu.adc),
    0x75: ("ADC", M.ZEROPAGE_X, alu.adc),
    0x6D: ("ADC", M.ABSOLUTE, alu.adc),
    0x7D: ("ADC", M.ABSOLUTE_X, alu.adc),
    0x79: ("ADC", M.ABSOLUTE_Y, alu.adc),
    0x61: ("ADC", M.INDEXED_INDIRECT, alu.adc),
    0x71: ("ADC", M.INDIRECT_INDEXED, alu.adc),

    0xE9: ("SBC", M.IMMEDIATE, alu.sbc),
    0xE5: ("SBC", M.ZEROPAGE, alu.sbc),
    0xF5: ("SBC", M.ZEROPAGE_X, alu.sbc),
    0xED: ("SBC", M.ABSOLUTE, alu.sbc),
    0xFD: ("SBC", M.ABSOLUTE_X, alu.sbc),
    0xF9: ("SBC", M.ABSOLUTE_Y, alu.sbc),
    0xE1: ("SBC", M.INDEXED_INDIRECT, alu.sbc),
    0xF1: ("SBC", M.INDIRECT_INDEXED, alu.sbc),

    0xC9: ("CMP", M.IMMEDIATE, alu.cmp),
    0xC5: ("CMP", M.ZEROPAGE, alu.cmp),
    0xD5: ("CMP", M.ZEROPAGE_X, alu.cmp),
    0xCD: ("CMP", M.ABSOLUTE, alu.cmp),
    0xDD: ("CMP", M.ABSOLUTE_X, alu.cmp),
    0xD9: ("CMP", M.ABSOLUTE_Y, alu.cmp),
    0xC1: ("CMP", M.INDEXED_INDIRECT, alu.cmp),
    0xD1: ("CMP", M.INDIRECT_INDEXED, alu.cmp),

    0xE0: ("CPX", M.IMMEDIATE, alu.cpx),
    0xE4: ("CPX", M.ZEROPAGE, alu.cpx),
    0xEC: ("CPX", M.ABSOLUTE, alu.cpx),

    0xC0: ("CPY", M.IMMEDIATE, alu.cpy),
    0xC4: ("CPY", M.ZEROPAGE, alu.cpy),
    0xCC: ("CPY", M.ABSOLUTE, alu.cpy),

    0x29: ("AND", M.IMMEDIATE, alu.and_),
    0x25: ("AND", M.ZEROPAGE, alu.and_),
    0x35: ("AND", M.ZEROPAGE_X, alu.and_),
    0x2D: ("AND", M.ABSOLUTE, alu.and_),
    0x3D: ("AND", M.ABSOLUTE_X, alu.and_),
    0x39: ("AND", M.ABSOLUTE_Y, alu.and_),
    0x21: ("AND", M.INDEXED_INDIRECT, alu.and_),
    0x31: ("AND", M.INDIRECT_INDEXED, alu.and_),

    0x09: ("ORA", M.IMMEDIATE, alu.ora),
    0x05: ("ORA", M.ZEROPAGE, alu.ora),
    0x15: ("ORA", M.ZEROPAGE_X, alu.ora),
    0x0D: ("ORA", M.ABSOLUTE, alu.ora),
    0x1D: ("ORA", M.ABSOLUTE_X, alu.ora),
    0x19: ("ORA", M.ABSOLUTE_Y, alu.ora),
    0x01: ("ORA", M.INDEXED_INDIRECT, alu.ora),
    0x11: ("ORA", M.INDIRECT_INDEXED, alu.ora),

    0x49: ("EOR", M.IMMEDIATE, alu.eor),
    0x45: ("EOR", M.ZEROPAGE, alu.eor),
    0x55: ("EOR", M.ZEROPAGE_X, alu.eor),
    0x4D: ("EOR", M.ABSOLUTE, alu.eor),
    0x5D: ("EOR", M.ABSOLUTE_X, alu.eor),
    0x59: ("EOR", M.ABSOLUTE_Y, alu.eor),
    0x41: ("EOR", M.INDEXED_INDIRECT, alu.eor),
    0x51: ("EOR", M.INDIRECT_INDEXED, alu.eor),

    0x24: ("BIT", M.ZEROPAGE, alu.bit),
    0x2C: ("BIT", M.ABSOLUTE, alu.bit),

    # Shift / Rotate
    0x0A: ("ASL", M.ACCUMULATOR, alu.asl),
    0x06: ("ASL", M.ZEROPAGE, alu.asl),
    0x16: ("ASL", M.ZEROPAGE_X, alu.asl),
    0x0E: ("ASL", M.ABSOLUTE, alu.asl),
    0x1E: ("ASL", M.ABSOLUTE_X, alu.asl),

    0x4A: ("LSR", M.ACCUMULATOR, alu.lsr),
    0x46: ("LSR", M.ZEROPAGE, alu.lsr),
    0x56: ("LSR", M.ZEROPAGE_X, alu.lsr),
    0x4E: ("LSR", M.ABSOLUTE, alu.lsr),
    0x5E: ("LSR", M.ABSOLUTE_X, alu.lsr),

    0x2A: ("ROL", M.ACCUMULATOR, alu.rol),
    0x26: ("ROL", M.ZEROPAGE, alu.rol),
    0x36: ("ROL", M.ZEROPAGE_X, alu.rol),
    0x2E: ("ROL", M.ABSOLUTE, alu.rol),
    0x3E: ("ROL", M.ABSOLUTE_X, alu.rol),

    0x6A: ("ROR", M.ACCUMULATOR, alu.ror),
    0x66: ("ROR", M.ZEROPAGE, alu.ror),
    0x76: ("ROR", M.ZEROPAGE_X, alu.ror),
    0x6E: ("ROR", M.ABSOLUTE, alu.ror),
    0x7E: ("ROR", M.ABSOLUTE_X, alu.ror),

    # INC/DEC
    0xE6: ("INC", M.ZEROPAGE, alu.inc),
    0xF6: ("INC", M.ZEROPAGE_X, alu.inc),
    0xEE: ("INC", M.ABSOLUTE, alu.inc),
    0xFE: ("INC", M.ABSOLUTE_X, alu.inc),

    0xC6: ("DEC", M.ZEROPAGE, alu.dec),
    0xD6: ("DEC", M.ZEROPAGE_X, alu.dec),
    0xCE: ("DEC", M.ABSOLUTE, alu.dec),
    0xDE: ("DEC", M.ABSOLUTE_X, alu.dec),

    0xE8: ("INX", M.IMPLIED, alu.inx),
    0xCA: ("DEX", M.IMPLIED, alu.dex),
    0xC8: ("INY", M.IMPLIED, alu.iny),
    0x88: ("DEY", M.IMPLIED, alu.dey),

    # --- Control Instructions ---
    # Branch
    0x10: ("BPL", M.RELATIVE, control.bpl),
    0x30: ("BMI", M.RELATIVE, control.bmi),
    0x50: ("BVC", M.RELATIVE, control.bvc),
    0x70: ("BVS", M.RELATIVE, control.bvs),
    0x90: ("BCC", M.RELATIVE, control.bcc),
    0xB0: ("BCS", M.RELATIVE, control.bcs),
    0xD0: ("BNE", M.RELATIVE, control.bne),
    0xF0: ("BEQ", M.RELATIVE, control.beq),

    # Jump / Subroutine
    0x4C: ("JMP", M.ABSOLUTE, control.jmp),
    0x6C: ("JMP", M.INDIRECT, control.jmp),
    0x20: ("JSR", M.ABSOLUTE, control.jsr),
    0x60: ("RTS", M.IMPLIED, control.rts),

    # Stack
    0x48: ("PHA", M.IMPLIED, control.pha),
    0x08: ("PHP", M.IMPLIED, control.php),
    0x68: ("PLA", M.IMPLIED, control.pla),
    0x28: ("PLP", M.IMPLIED, control.plp),

    # Flags
    0x18: ("CLC", M.IMPLIED, control.clc),
    0x38: ("SEC", M.IMPLIED, control.sec),
    0x58: ("CLI", M.IMPLIED, control.cli),
    0x78: ("SEI", M.IMPLIED, control.sei),
    0xB8: ("CLV", M.IMPLIED, control.clv),
    0xD8: ("CLD", M.IMPLIED, control.cld),
    0xF8: ("SED", M.IMPLIED, control.sed),

    # System
    0xEA: ("NOP", M.IMPLIED, control.nop),
    0x00: ("BRK", M.IMPLIED, control.brk),
    0x40: ("RTI", M.IMPLIED, control.rti),
}

# @intent:responsibility オペコードとオペランドを解析し、実効アドレス解決済みのOperationを返す。
# @intent:pre-condition pcはオペコードが置かれているアドレス。
# @intent:post-condition 未定義オペコードの場合はIllegalOpcodeErrorを送出する（状態は変更しない）。
def decode_opcode(opcode: int, bus: Bus, pc: int, state: Mos6502CpuState) -> Operation:
    entry = OPCODE_MAP.get(opcode)
    if entry is None:
        raise IllegalOpcodeError(opcode, pc)

    mnemonic, mode, _ = entry
    resolver = base.addr_jsr_target if mnemonic == "JSR" else base.RESOLVERS[mode]
    addr_res = resolver((pc + 1) & 0xFFFF, bus, state)
    length = 1 + len(addr_res.operand_bytes)
    op_str = base.format_operand(mode, addr_res.operand_bytes, (pc + length) & 0xFFFF)

    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic=mnemonic,
        operands=[op_str] if op_str else [],
        operand_bytes=addr_res.operand_bytes,
        length=length,
        address=pc,
        mode=mode,
        effective_address=addr_res.address,
        value=addr_res.value,
    )

# @intent:responsibility デコード済みの命令を実行し、新しい状態を返す。
# @intent:pre-condition state.pc は既に命令長分進められていること。
def execute_instruction(operation: Operation, state: Mos6502CpuState, bus: Bus) -> Mos6502CpuState:
    _, mode, exec_func = OPCODE_MAP[operation.opcode]
    addr_res = AddressingResult(mode, operation.effective_address, operation.value, operation.operand_bytes)
    return exec_func(state, bus, addr_res)
