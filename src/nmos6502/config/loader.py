import logging
import yaml
from pathlib import Path
from typing import Any, Dict, Optional

from nmos6502.core.errors import ConfigError
from .models import SystemConfig, MemoryRegion, ProgramImage, CpuInitialState

logger = logging.getLogger(__name__)

REGION_TYPES = ("RAM", "ROM")
IMAGE_FORMATS = ("bin", "ihex", "asm")
REGISTER_NAMES = ("a", "x", "y", "p")

class ConfigLoader:
    def load_from_file(self, path) -> SystemConfig:
        path = Path(path)
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read configuration {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        logger.debug("Loaded configuration from %s", path)
        return self._parse_config(data, base_dir=path.parent)

    def load_from_string(self, text: str, base_dir: Optional[Path] = None) -> SystemConfig:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e
        return self._parse_config(data, base_dir=base_dir)

    def _parse_config(self, data: Any, base_dir: Optional[Path] = None) -> SystemConfig:
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a mapping")

        # Parse Memory Map
        memory_map = []
        for region_data in self._list(data, "memory_map"):
            start = self._parse_int(region_data.get("start"), "memory_map.start")
            end = self._parse_int(region_data.get("end"), "memory_map.end")
            rtype = str(region_data.get("type", "RAM")).upper()
            if rtype not in REGION_TYPES:
                raise ConfigError(f"Unknown memory region type: {rtype}")
            if not 0 <= start <= end <= 0xFFFF:
                raise ConfigError(f"Invalid memory region ${start:04X}-${end:04X}")
            memory_map.append(MemoryRegion(
                start=start,
                end=end,
                type=rtype,
                label=str(region_data.get("label", "")),
            ))

        # Parse Program Images
        images = []
        for image_data in self._list(data, "images"):
            if "path" not in image_data:
                raise ConfigError("Program image requires a 'path'")
            fmt = str(image_data.get("format", "bin")).lower()
            if fmt not in IMAGE_FORMATS:
                raise ConfigError(f"Unknown image format: {fmt}")
            images.append(ProgramImage(
                path=str(image_data["path"]),
                format=fmt,
                address=self._parse_int(image_data.get("address", 0), "images.address"),
            ))

        # Parse Initial State
        initial_state_data = data.get("initial_state") or {}
        if not isinstance(initial_state_data, dict):
            raise ConfigError("'initial_state' must be a mapping")
        registers = {}
        for name, value in (initial_state_data.get("registers") or {}).items():
            name = str(name).lower()
            if name not in REGISTER_NAMES:
                raise ConfigError(f"Unknown register: {name}")
            registers[name] = self._parse_int(value, f"registers.{name}") & 0xFF
        initial_state = CpuInitialState(
            use_reset_vector=bool(initial_state_data.get("use_reset_vector", True)),
            pc=self._parse_int(initial_state_data.get("pc", 0), "pc") & 0xFFFF,
            sp=self._parse_int(initial_state_data.get("sp", 0xFD), "sp") & 0xFF,
            registers=registers,
        )

        return SystemConfig(
            memory_map=memory_map,
            images=images,
            initial_state=initial_state,
            base_dir=base_dir,
        )

    def _list(self, data: Dict[str, Any], key: str) -> list:
        items = data.get(key) or []
        if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
            raise ConfigError(f"'{key}' must be a list of mappings")
        return items

    def _parse_int(self, value: Any, field_name: str = "value") -> int:
        if isinstance(value, bool):
            raise ConfigError(f"Invalid integer for {field_name}: {value}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            text = value.strip()
            try:
                if text.lower().startswith("0x"):
                    return int(text, 16)
                if text.startswith("$"):
                    return int(text[1:], 16)
                return int(text)
            except ValueError:
                pass
        raise ConfigError(f"Invalid integer for {field_name}: {value!r}")
