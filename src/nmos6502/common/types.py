"""
共通の型定義を提供するモジュール。
プロジェクト全体で使用される汎用的な型エイリアスなどを定義します。
"""
from typing import Dict, List, NamedTuple, Tuple

# @intent:data_structure シンボル名とアドレスをマッピングする辞書の型エイリアス。
# Assembler, Loader, CPU, Debuggerで共通して使用されます。
SymbolMap = Dict[str, int]

# @intent:data_structure (アドレス, バイト値) の列。アセンブラの出力形式。
BinaryData = List[Tuple[int, int]]

# @intent:data_structure 単一のレジスタの表示定義。
class RegisterInfo(NamedTuple):
    name: str
    width: int  # ビット幅 (8 or 16)

# @intent:data_structure レジスタグループの表示定義。関連するレジスタをまとめる。
class RegisterLayoutInfo(NamedTuple):
    group_name: str
    registers: List[RegisterInfo]
