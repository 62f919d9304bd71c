# nmos6502/core/errors.py
"""
エミュレータ全体で使用する例外階層。
"""

class EmulatorError(Exception):
    """全ての例外の基底クラス。"""

# @intent:responsibility 未定義オペコードを表します。step()はこれを送出せず、Snapshotに格納して返します。
class IllegalOpcodeError(EmulatorError):
    def __init__(self, opcode: int, address: int):
        self.opcode = opcode
        self.address = address
        super().__init__(f"Illegal opcode ${opcode:02X} at ${address:04X}")

class ConfigError(EmulatorError):
    """システム構成ファイルの不正。"""

class LoaderError(EmulatorError, ValueError):
    """プログラムイメージの書式エラー。"""

class AssemblerError(EmulatorError, ValueError):
    """アセンブル時のエラー（未定義シンボル、分岐範囲外など）。"""
