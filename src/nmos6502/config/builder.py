import logging
from pathlib import Path
from typing import Tuple

from nmos6502.transport.bus import Bus, RAM, ROM
from nmos6502.core.errors import ConfigError
from nmos6502.arch.mos6502.cpu import Mos6502Cpu
from nmos6502.loader.loader import BinaryLoader, IntelHexLoader, AssemblyLoader
from .models import SystemConfig, CpuInitialState, ProgramImage

logger = logging.getLogger(__name__)

# @intent:responsibility システム構成（Config）に基づいて、Bus、Device、CPUを生成・接続し、初期状態を適用します。
class SystemBuilder:
    def build_system(self, config: SystemConfig) -> Tuple[Mos6502Cpu, Bus]:
        bus = Bus()

        if not config.memory_map:
            bus.register_device(0x0000, 0xFFFF, RAM(0x10000))

        for region in config.memory_map:
            size = region.end - region.start + 1
            if region.type == "RAM":
                device = RAM(size)
            elif region.type == "ROM":
                device = ROM(size)
            else:
                raise ConfigError(
                    f"Unknown device type '{region.type}' for range {region.start:04X}-{region.end:04X}"
                )
            try:
                bus.register_device(region.start, region.end, device)
            except ValueError as e:
                raise ConfigError(str(e)) from e

        symbol_map = {}
        for image in config.images:
            symbol_map.update(self.load_image(bus, image, config.base_dir))

        # リセットベクタはイメージ配置後に読む
        try:
            cpu = Mos6502Cpu(bus)
        except IndexError as e:
            raise ConfigError(f"Reset vector is not mapped: {e}") from e
        cpu.set_symbol_map(symbol_map)
        self.apply_initial_state(cpu, config.initial_state)

        return cpu, bus

    # @intent:responsibility 1つのプログラムイメージを形式に応じてロードし、得られたシンボルを返します。
    def load_image(self, bus: Bus, image: ProgramImage, base_dir=None) -> dict:
        path = Path(image.path)
        if base_dir is not None and not path.is_absolute():
            path = Path(base_dir) / path

        try:
            if image.format == "bin":
                BinaryLoader().load_binary(path, bus, image.address)
            elif image.format == "ihex":
                IntelHexLoader().load_intel_hex(path, bus)
            elif image.format == "asm":
                return AssemblyLoader().load_assembly(path, bus)
            else:
                raise ConfigError(f"Unknown image format: {image.format}")
        except IndexError as e:
            raise ConfigError(f"Image {path} writes outside mapped memory: {e}") from e
        logger.info("Loaded %s image %s", image.format, path)
        return {}

    # @intent:responsibility CPUをリセットし、Configから指定された初期値を適用します。
    def apply_initial_state(self, cpu: Mos6502Cpu, config_state: CpuInitialState) -> None:
        cpu.reset()

        if config_state.use_reset_vector:
            return

        new_state = cpu.get_state().replace(pc=config_state.pc, sp=config_state.sp)
        for reg_name, value in config_state.registers.items():
            new_state = new_state.replace(**{reg_name: value})
        cpu.restore_state(new_state)
        logger.debug("Initial state overridden: PC=$%04X SP=$%02X", new_state.pc, new_state.sp)
