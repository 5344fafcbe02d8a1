from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import numpy as np


class Strategy(str, Enum):
    SEQUENTIAL = "cpu"
    ACCELERATED = "gpu"
    EMULATED = "emulated"


@dataclass(frozen=True)
class ReductionConfig:
    """Параметры потокового сумматора на устройстве."""

    # Тип элементов буфера (ядро работает с float)
    dtype: type = np.float32
    # Стартовая ёмкость = max_capacity // initial_fraction
    initial_fraction: int = 4
    program_id: str = "streamkmeans.reduce"
    entry_point: str = "sum_float"

    @property
    def itemsize(self) -> int:
        return int(np.dtype(self.dtype).itemsize)


@dataclass(frozen=True)
class DeviceConfig:
    """Параметры контекста устройства."""

    device_id: int = 0
    # Ограничение памяти, которую видят сумматоры (None = свободная память устройства)
    memory_limit_bytes: Optional[int] = None

    # Для эмулируемого устройства
    host_memory_bytes: int = 1024 * 1024
    host_wave_size: int = 32
    host_max_work_group_size: int = 256


@dataclass(frozen=True)
class RunConfig:
    """Параметры одного запуска из командной строки."""

    input_path: Path
    centroids_path: Path
    output_path: Path
    strategy: Strategy
    iterations: int = 1
    centroids_output_path: Optional[Path] = None
    device: DeviceConfig = DeviceConfig()
