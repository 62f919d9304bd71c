# nmos6502/cli.py
"""
コマンドラインフロントエンド。

    nmos6502 program.bin --address 0x0200 --steps 1000 --trace
    nmos6502 --config system.yaml

終了コード: 0 = ステップ上限/ブレークポイントで停止, 1 = 入力エラー, 2 = 未定義オペコード
"""
import argparse
import logging
import sys
from typing import List, Optional

from nmos6502 import __version__
from nmos6502.transport.bus import Bus
from nmos6502.core.errors import EmulatorError
from nmos6502.core.snapshot import Snapshot
from nmos6502.arch.mos6502.cpu import Mos6502Cpu
from nmos6502.arch.mos6502.disassembler import disassemble_instruction
from nmos6502.config.loader import ConfigLoader
from nmos6502.config.builder import SystemBuilder
from nmos6502.config.models import ProgramImage
from nmos6502.debugger.debugger import Debugger, BreakpointCondition, BreakpointConditionType, StopReason

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_ILLEGAL_OPCODE = 2

HISTORY_LIMIT = 1000

def _int_arg(text: str) -> int:
    text = text.strip()
    try:
        if text.startswith('$'):
            return int(text[1:], 16)
        return int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid address: {text}") from None

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='nmos6502',
        description='NMOS 6502 instruction-level emulator',
    )
    parser.add_argument('image', nargs='?', help='program image to load into a flat 64KiB RAM')
    parser.add_argument('-c', '--config', metavar='FILE', help='YAML system configuration')
    parser.add_argument('-a', '--address', type=_int_arg, default=0x0200,
                        help='load address for binary images (default: $0200)')
    parser.add_argument('-f', '--format', choices=['bin', 'ihex', 'asm'], default='bin',
                        help='image format (default: bin)')
    parser.add_argument('--pc', type=_int_arg, help='start address (overrides the reset vector)')
    parser.add_argument('-n', '--steps', type=int, default=100000,
                        help='maximum number of instructions to execute (default: 100000)')
    parser.add_argument('-b', '--break', dest='breakpoints', type=_int_arg, action='append', default=[],
                        metavar='ADDR', help='stop when PC reaches ADDR (repeatable)')
    parser.add_argument('-t', '--trace', action='store_true', help='print every executed instruction')
    parser.add_argument('-v', '--verbose', action='count', default=0, help='increase log verbosity')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser

# @intent:responsibility 1命令分のトレース行（逆アセンブルとレジスタダンプ）を組み立てます。
def format_trace(snapshot: Snapshot) -> str:
    op = snapshot.operation
    raw = [op.opcode] + list(op.operand_bytes)
    text, _ = disassemble_instruction(raw, op.address)
    hex_str = " ".join(f"{b:02X}" for b in raw)
    s = snapshot.state
    flags = "".join(
        name if s.p & mask else "."
        for name, mask in (("N", 0x80), ("V", 0x40), ("D", 0x08), ("I", 0x04), ("Z", 0x02), ("C", 0x01))
    )
    return (f"{op.address:04X}  {hex_str:<8}  {text:<24}"
            f"A={s.a:02X} X={s.x:02X} Y={s.y:02X} P={s.p:02X} {flags} SP={s.sp:02X}")

def _build_from_image(args) -> Mos6502Cpu:
    bus = Bus.flat()
    image = ProgramImage(path=args.image, format=args.format, address=args.address)
    symbols = SystemBuilder().load_image(bus, image)
    cpu = Mos6502Cpu(bus)
    cpu.set_symbol_map(symbols)
    if args.pc is None and args.format == 'bin' and cpu.get_state().pc == 0x0000:
        # リセットベクタ未設定の生バイナリはロードアドレスから開始する
        cpu.restore_state(cpu.get_state().replace(pc=args.address))
    return cpu

def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format='%(levelname)s %(name)s: %(message)s')

    if not args.config and not args.image:
        parser.error('either an image or --config is required')

    try:
        if args.config:
            config = ConfigLoader().load_from_file(args.config)
            cpu, _ = SystemBuilder().build_system(config)
        else:
            cpu = _build_from_image(args)
    except (EmulatorError, OSError, IndexError) as e:
        logger.error("%s", e)
        return EXIT_ERROR

    if args.pc is not None:
        cpu.restore_state(cpu.get_state().replace(pc=args.pc & 0xFFFF))

    debugger = Debugger(cpu, max_history=HISTORY_LIMIT)
    for addr in args.breakpoints:
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.PC_MATCH, value=addr & 0xFFFF))

    on_step = (lambda snap: print(format_trace(snap))) if args.trace else None
    try:
        reason = debugger.run(max_steps=args.steps, on_step=on_step)
    except IndexError as e:
        logger.error("Bus error at PC=$%04X: %s", cpu.get_state().pc, e)
        return EXIT_ERROR

    state = cpu.get_state()
    print(f"Stopped: {reason.value} after {cpu.instruction_count} instructions at PC=${state.pc:04X}")

    if reason == StopReason.ILLEGAL_OPCODE:
        snapshot = debugger.get_last_snapshot()
        print(f"Error: {snapshot.error}", file=sys.stderr)
        return EXIT_ILLEGAL_OPCODE
    return EXIT_OK
