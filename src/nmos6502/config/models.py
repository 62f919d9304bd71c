from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

@dataclass
class MemoryRegion:
    start: int
    end: int
    type: str  # "RAM", "ROM"
    label: str = ""

@dataclass
class ProgramImage:
    path: str
    format: str = "bin"  # "bin", "ihex", "asm"
    address: int = 0x0000  # binのみ使用

@dataclass
class CpuInitialState:
    use_reset_vector: bool = True  # Falseのときのみ pc/sp/registers を適用する
    pc: int = 0x0000
    sp: int = 0xFD
    registers: Dict[str, int] = field(default_factory=dict)

@dataclass
class SystemConfig:
    memory_map: List[MemoryRegion] = field(default_factory=list)
    images: List[ProgramImage] = field(default_factory=list)
    initial_state: CpuInitialState = field(default_factory=CpuInitialState)
    base_dir: Optional[Path] = None  # 相対パスの基準（構成ファイルのあるディレクトリ）
