"""
Контекст вычислительного устройства.

Контекст описывает возможности устройства (объём памяти, размер волны,
максимальный размер рабочей группы), держит кэш скомпилированных ядер
и предоставляет синхронные примитивы работы с буферами. Движок KMeans
владеет одним контекстом и передаёт ссылку на него каждому сумматору.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import numpy as np

from streamkmeans.errors import DeviceComputeError

logger = logging.getLogger(__name__)


def is_power_of_two(value: int) -> bool:
    return value > 0 and (value & (value - 1)) == 0


def floor_power_of_two(value: int) -> int:
    """Наибольшая степень двойки, не превосходящая value (0 для value < 1)."""
    if value < 1:
        return 0
    return 1 << (int(value).bit_length() - 1)


class DeviceContext(ABC):
    """
    Общий интерфейс устройства для потоковой редукции.

    Все операции синхронны с точки зрения вызывающего: после возврата
    из write/dispatch/gather данные на устройстве уже в актуальном состоянии.
    """

    def __init__(self) -> None:
        self._kernels: dict[tuple[str, str], Any] = {}

    # --- Возможности устройства ---

    @abstractmethod
    def max_memory_bytes(self) -> int:
        """Объём памяти (в байтах), доступный под буферы редукции."""
        raise NotImplementedError

    @abstractmethod
    def wave_size(self) -> int:
        """Минимальная гранулярность параллельного исполнения."""
        raise NotImplementedError

    @abstractmethod
    def max_work_group_size(self) -> int:
        raise NotImplementedError

    def work_group_size(self, global_size: int) -> int:
        """
        Размер рабочей группы для глобального размера global_size.

        global_size и максимальный размер группы - степени двойки, поэтому
        результат всегда делит global_size нацело.
        """
        return max(1, min(int(global_size), self.max_work_group_size()))

    # --- Ядра ---

    def get_or_load_kernel(self, program_id: str, entry_point: str) -> Any:
        """Возвращает ядро из кэша, компилируя его при первом обращении."""
        key = (program_id, entry_point)
        kernel = self._kernels.get(key)
        if kernel is None:
            kernel = self._load_kernel(program_id, entry_point)
            self._kernels[key] = kernel
            logger.debug(f"Kernel loaded: {program_id}/{entry_point}")
        return kernel

    @property
    def cached_kernels(self) -> list[tuple[str, str]]:
        return list(self._kernels)

    @abstractmethod
    def _load_kernel(self, program_id: str, entry_point: str) -> Any:
        raise NotImplementedError

    # --- Буферы и запуск ---

    @abstractmethod
    def allocate(self, count: int, dtype: Any) -> Any:
        """Выделяет буфер на count элементов; при неудаче AllocationFailureError."""
        raise NotImplementedError

    @abstractmethod
    def write(self, buffer: Any, host: np.ndarray, offset: int = 0) -> None:
        """Копирует host целиком в buffer начиная с позиции offset."""
        raise NotImplementedError

    @abstractmethod
    def read(self, buffer: Any, offset: int, count: int) -> np.ndarray:
        raise NotImplementedError

    @abstractmethod
    def dispatch(
        self,
        kernel: Any,
        buffer: Any,
        global_size: int,
        local_size: int,
        local_mem_bytes: int,
    ) -> None:
        """Запускает ядро редукции на global_size элементах группами по local_size."""
        raise NotImplementedError

    @abstractmethod
    def gather(self, buffer: Any, count: int, stride: int) -> None:
        """Переносит элементы buffer[i * stride] в buffer[i] для i < count."""
        raise NotImplementedError

    @abstractmethod
    def finish(self) -> None:
        """Ожидает завершения всех операций очереди."""
        raise NotImplementedError


def check_launch(buffer_len: int, global_size: int, local_size: int, max_group: int) -> None:
    """Проверка геометрии запуска, общая для всех устройств."""
    if local_size < 1 or local_size > max_group:
        raise DeviceComputeError(f"Invalid work-group size {local_size} (max {max_group})")
    if global_size % local_size != 0:
        raise DeviceComputeError(
            f"Global size {global_size} is not a multiple of work-group size {local_size}"
        )
    if global_size > buffer_len:
        raise DeviceComputeError(f"Global size {global_size} exceeds buffer length {buffer_len}")
