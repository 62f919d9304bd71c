# nmos6502/loader/loader.py
"""
コードローダーモジュール。
生バイナリ、Intel HEX、アセンブリソースのロードをサポートします。
すべてのローダーは Bus.load() を通して書き込むため、ROM領域にもイメージを配置できます。
"""
import logging
from pathlib import Path
from typing import Union

from nmos6502.transport.bus import Bus
from nmos6502.common.types import SymbolMap
from nmos6502.core.errors import LoaderError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

class BinaryLoader:
    """
    生バイナリイメージを指定アドレスから配置するローダー。
    """
    # @intent:responsibility ファイル内容をそのまま address から連続して書き込みます。
    # @intent:post-condition 書き込んだバイト数を返します。64KiB空間を超える場合はLoaderError。
    def load_binary(self, file_path: PathLike, bus: Bus, address: int = 0) -> int:
        try:
            data = Path(file_path).read_bytes()
        except OSError as e:
            raise LoaderError(f"Cannot read binary image {file_path}: {e}") from e

        if address + len(data) > 0x10000:
            raise LoaderError(
                f"Binary image {file_path} ({len(data)} bytes) does not fit at ${address:04X}"
            )
        bus.load(address, data)
        logger.debug("Loaded %d bytes from %s at $%04X", len(data), file_path, address)
        return len(data)

class IntelHexLoader:
    """
    Intel HEX形式のファイルを解析し、データをバスにロードするローダー。
    """
    def load_intel_hex(self, file_path: PathLike, bus: Bus) -> int:
        try:
            with open(file_path, 'r') as f:
                lines = f.readlines()
        except OSError as e:
            raise LoaderError(f"Cannot read Intel HEX file {file_path}: {e}") from e
        return self.load_intel_hex_lines(lines, bus)

    # @intent:responsibility レコード 00/01/02/04 を解釈します。03/05（開始アドレス）は無視します。
    def load_intel_hex_lines(self, lines, bus: Bus) -> int:
        base_address = 0x0000
        total = 0

        for line_num, line in enumerate(lines, 1):
            line = line.strip()
            if not line or not line.startswith(':'):
                continue

            comment_start = line.find(';')
            if comment_start != -1:
                line = line[:comment_start].strip()

            if len(line) < 11:
                raise LoaderError(f"Invalid Intel HEX record format on line {line_num}: Too short - {line}")

            try:
                record = bytes.fromhex(line[1:])
            except ValueError:
                raise LoaderError(f"Error parsing Intel HEX line {line_num}: {line}") from None

            data_length = record[0]
            address_field = (record[1] << 8) | record[2]
            record_type = record[3]
            data = record[4:-1]

            if len(data) != data_length:
                raise LoaderError(f"Data length mismatch on line {line_num}")

            if sum(record) & 0xFF != 0:
                calculated = (-sum(record[:-1])) & 0xFF
                raise LoaderError(
                    f"Checksum mismatch on line {line_num}: Calculated {calculated:02X}, Expected {record[-1]:02X}"
                )

            if record_type == 0x00:
                load_address = base_address + address_field
                if load_address + data_length > 0x10000:
                    raise LoaderError(f"Record on line {line_num} lies outside the 64KiB address space")
                bus.load(load_address, data)
                total += data_length
            elif record_type == 0x01:
                break
            elif record_type == 0x02:
                base_address = int.from_bytes(data, "big") << 4
            elif record_type == 0x04:
                base_address = int.from_bytes(data, "big") << 16
            elif record_type in (0x03, 0x05):
                pass
            else:
                raise LoaderError(f"Unknown Intel HEX record type {record_type:02X} on line {line_num}")

        logger.debug("Loaded %d bytes from Intel HEX", total)
        return total

class AssemblyLoader:
    """
    アセンブリソースコードをアセンブルしてバスにロードし、シンボル情報を返すローダー。
    """
    def load_assembly(self, file_path: PathLike, bus: Bus) -> SymbolMap:
        try:
            with open(file_path, 'r', encoding="utf-8") as f:
                lines = f.read().splitlines()
        except OSError as e:
            raise LoaderError(f"Cannot read assembly source {file_path}: {e}") from e

        from nmos6502.arch.mos6502.assembler import Mos6502Assembler
        symbol_map, binary_data = Mos6502Assembler().assemble(lines)

        for addr, data in binary_data:
            bus.load(addr, data)

        logger.debug("Assembled %s: %d bytes, %d symbols", file_path, len(binary_data), len(symbol_map))
        return symbol_map
