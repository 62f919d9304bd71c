# nmos6502/transport/bus.py
"""
Transport Layer (メモリバス)

このモジュールは、6502から見える64KiBのアドレス空間を抽象化し、
読み書きアクセスを適切なデバイスに委譲する責務を負います。
全てのアドレスは65536を法として扱われます。
"""
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Tuple, Union
from dataclasses import dataclass
from enum import Enum

ADDRESS_MASK = 0xFFFF
ADDRESS_SPACE_SIZE = 0x10000

# @intent:responsibility バスアクセスを記録するためのタイプを定義します。
class BusAccessType(Enum):
    READ = "READ"
    WRITE = "WRITE"

# @intent:responsibility 個々のバスアクセス操作を記録します。
@dataclass(frozen=True)
class BusAccess:
    """
    バス上で行われた単一のアクセス（読み込みまたは書き込み）を記録するデータクラス。
    書き込みの場合、previous_dataに上書き前の値が入ります（デバッガのUndo用）。
    """
    address: int
    data: int # 8bit value
    access_type: BusAccessType
    previous_data: Optional[int] = None

# @intent:responsibility バスに接続されるデバイスの抽象インターフェースを定義します。
class Device(ABC):
    """
    バスに接続されるデバイスの抽象基底クラス。
    メモリマップドI/Oやテストハーネスはこれを継承してアクセスを横取りします。
    """
    # @intent:responsibility 指定されたオフセットから8bitのデータを読み出します。
    @abstractmethod
    def read(self, address: int) -> int:
        """
        指定されたアドレスから8bitのデータを読み出します。
        アドレスはデバイス内でのオフセットとして扱われます。
        """
        pass

    # @intent:responsibility 指定されたオフセットに8bitのデータを書き込みます。
    @abstractmethod
    def write(self, address: int, data: int) -> None:
        """
        指定されたアドレスに8bitのデータを書き込みます。
        アドレスはデバイス内でのオフセットとして扱われます。
        """
        pass

    # @intent:responsibility イメージロード用の書き込み。デフォルトは通常のwriteと同じです。
    def load_data(self, address: int, data: int) -> None:
        self.write(address, data)

# @intent:responsibility 基本的なRAMデバイスの機能を提供します。
class RAM(Device):
    """
    ゼロ初期化されたRAMデバイス。
    """
    # @intent:pre-condition sizeは正の整数である必要があります。
    def __init__(self, size: int):
        if not isinstance(size, int) or size <= 0:
            raise ValueError("RAM size must be a positive integer.")
        self._memory = bytearray(size)
        self._size = size

    def read(self, address: int) -> int:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for RAM of size {self._size}.")
        return self._memory[address]

    def write(self, address: int, data: int) -> None:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for RAM of size {self._size}.")
        if not 0 <= data <= 0xFF:
            raise ValueError(f"Data {data} is not an 8-bit value.")
        self._memory[address] = data

    def get_size(self) -> int:
        return self._size

# @intent:responsibility 読み込み専用メモリ(ROM)の機能を提供します。
class ROM(RAM):
    """
    読み込み専用メモリデバイス。
    CPUからの書き込みは無視されます。内容の初期化は load_data 経由でのみ行います。
    """
    # @intent:rationale 実機のROMへの書き込みは単に効果を持たないため、例外ではなく無視とします。
    def write(self, address: int, data: int) -> None:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for ROM of size {self._size}.")

    def load_data(self, address: int, data: int) -> None:
        super().write(address, data)

# @intent:responsibility アドレス空間を管理し、デバイスへのアクセスをディスパッチするメモリバス。
# @intent:rationale 全てのアクセスを記録し、Snapshotに含めることで観測可能性を高めます。
class Bus:
    """
    6502のアドレス空間を管理し、デバイスへのアクセスをディスパッチするバス。
    read/write のみがCPUコアから使われるインターフェースです。
    """
    def __init__(self):
        # メモリマップ: (start_address, end_address, device) のタプルリスト
        self._memory_map: List[Tuple[int, int, Device]] = []
        self._bus_activity_log: List[BusAccess] = []

    # @intent:responsibility 64KiB全域をRAM一枚で覆った標準構成のバスを生成します。
    @classmethod
    def flat(cls) -> "Bus":
        bus = cls()
        bus.register_device(0x0000, ADDRESS_MASK, RAM(ADDRESS_SPACE_SIZE))
        return bus

    def _log_access(self, access: BusAccess) -> None:
        self._bus_activity_log.append(access)

    # @intent:responsibility 記録されたバスアクティビティログを取得し、クリアします。
    def get_and_clear_activity_log(self) -> List[BusAccess]:
        log = self._bus_activity_log
        self._bus_activity_log = []
        return log

    # @intent:responsibility 指定されたアドレス範囲（両端を含む）にデバイスを登録します。
    # @intent:rationale 範囲の重複チェックは行いません。先に登録されたデバイスが優先されます。
    def register_device(self, start_address: int, end_address: int, device: Device) -> None:
        if not (0 <= start_address <= end_address <= ADDRESS_MASK):
            raise ValueError("Invalid address range: start_address must be <= end_address and within $0000-$FFFF.")
        if not isinstance(device, Device):
            raise TypeError("Device must be an instance of a class derived from Device.")

        if isinstance(device, RAM):
            expected_size = end_address - start_address + 1
            if device.get_size() != expected_size:
                raise ValueError(
                    f"Registered {type(device).__name__} device size ({device.get_size()} bytes) does not match "
                    f"the specified address range size ({expected_size} bytes)."
                )

        self._memory_map.append((start_address, end_address, device))

    # @intent:responsibility 登録済みのメモリマップを返します。
    def get_memory_map(self) -> List[Tuple[int, int, Device]]:
        return list(self._memory_map)

    # @intent:post-condition デバイスが見つからなかった場合、IndexErrorを発生させます。
    def _find_device(self, address: int) -> Tuple[Device, int]:
        for start, end, device in self._memory_map:
            if start <= address <= end:
                return device, address - start
        raise IndexError(f"Address {address:#06x} not mapped to any device.")

    def read(self, address: int) -> int:
        """
        指定されたアドレスから8bitのデータを読み出します。
        アクセスはログに記録されます。
        """
        address &= ADDRESS_MASK
        device, offset = self._find_device(address)
        data = device.read(offset)
        self._log_access(BusAccess(address, data, BusAccessType.READ))
        return data

    # @intent:responsibility ログを記録せずにデータを読み出します（逆アセンブラ・デバッガ用）。
    def peek(self, address: int) -> int:
        address &= ADDRESS_MASK
        device, offset = self._find_device(address)
        return device.read(offset)

    def write(self, address: int, data: int) -> None:
        """
        指定されたアドレスに8bitのデータを書き込みます。
        ROMへの書き込みはROMデバイスの実装により無視されます。
        上書き前の値はRAM/ROMに対してのみ取得し、I/Oデバイスには書き込み以外のアクセスを発生させません。
        """
        address &= ADDRESS_MASK
        device, offset = self._find_device(address)
        # @intent:note I/Oデバイスの読み出しは副作用を持ちうるため、previous_dataはNoneとします。
        previous = device.read(offset) if isinstance(device, RAM) else None
        device.write(offset, data)
        self._log_access(BusAccess(address, data, BusAccessType.WRITE, previous_data=previous))

    # @intent:responsibility プログラムイメージをログ無しで配置します。ROMにも書き込めます。
    def load(self, address: int, data: Union[int, bytes, bytearray, Iterable[int]]) -> None:
        if isinstance(data, int):
            data = [data]
        for i, byte in enumerate(data):
            target = (address + i) & ADDRESS_MASK
            device, offset = self._find_device(target)
            device.load_data(offset, byte)
