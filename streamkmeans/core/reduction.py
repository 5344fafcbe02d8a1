"""
Потоковый сумматор на вычислительном устройстве.

Значения копятся в буфере фиксированной ёмкости на хосте. Когда буфер
заполнен (или запрошена сумма), его содержимое переносится на устройство
и сворачивается многораундовой древовидной редукцией: каждый раунд
сжимает global_size элементов до global_size / local_size частичных сумм,
пока не останется одна рабочая группа. Результат раунда добавляется
к накопленной сумме.

Ёмкость всегда степень двойки в диапазоне [wave_size, max_capacity].
max_capacity определяется по памяти устройства при создании и только
уменьшается: после неудачного выделения буфера сумматор никогда не
пробует ёмкость, которая уже оказалась недоступной.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

import numpy as np

from streamkmeans.config import ReductionConfig
from streamkmeans.device.base import DeviceContext, floor_power_of_two
from streamkmeans.errors import (
    AllocationFailureError,
    DeviceComputeError,
    DeviceError,
    EngineStateError,
)

logger = logging.getLogger(__name__)

_MB = 1024 * 1024


class StreamingReducer:
    """
    Сумма произвольно длинного потока скаляров с редукцией на устройстве.

    Args:
        device: Контекст устройства (не принадлежит сумматору)
        config: Тип элементов, стартовая доля ёмкости и имя ядра
    """

    def __init__(self, device: DeviceContext, config: ReductionConfig = ReductionConfig()) -> None:
        self.device = device
        self.config = config
        self._dtype = np.dtype(config.dtype)
        self._itemsize = config.itemsize
        self._wave = int(device.wave_size())
        # Иначе раунды редукции не сходятся к одной группе
        if device.max_work_group_size() < self._wave:
            raise DeviceError(
                f"Work group size {device.max_work_group_size()} is smaller "
                f"than wave size {self._wave}"
            )

        self._max_capacity = floor_power_of_two(device.max_memory_bytes() // self._itemsize)
        if self._max_capacity < self._wave:
            raise AllocationFailureError(
                f"Device memory holds {self._max_capacity} items, "
                f"less than wave size {self._wave}"
            )
        logger.debug(
            f"max_capacity={self._max_capacity} items; "
            f"{self._max_capacity * self._itemsize // _MB}MB"
        )

        self._capacity = 0
        self._host: np.ndarray | None = None
        self._device_buffer: Any = None
        self._count = 0
        self._total = 0.0
        self.failed_flushes = 0

        self.reset_result()
        self.reset_buffer(max(1, self._max_capacity // config.initial_fraction))

    # --- Состояние ---

    @property
    def capacity(self) -> int:
        """Текущая ёмкость буфера (элементов)."""
        return self._capacity

    @property
    def max_capacity(self) -> int:
        """Верхняя граница ёмкости; только уменьшается."""
        return self._max_capacity

    @property
    def count(self) -> int:
        """Число значений в буфере, ещё не свёрнутых на устройстве."""
        return self._count

    @property
    def total(self) -> float:
        """Сумма всех уже свёрнутых пакетов."""
        return self._total

    # --- Управление буфером ---

    def optimal_item_count(self, n: int) -> int:
        """
        Ёмкость под n элементов: wave_size для малых n, иначе ближайшая
        степень двойки (от wave_size) не меньше n, но не больше max_capacity.
        """
        if n <= self._wave:
            return self._wave
        items = self._wave
        while items < n and items < self._max_capacity:
            items *= 2
        return items

    def reset_buffer(self, requested: int | None = None) -> int:
        """
        Пересоздаёт буферы хоста и устройства под requested элементов.

        При неудачном выделении ёмкость и max_capacity уменьшаются вдвое,
        попытка повторяется. Несвёрнутые значения буфера сначала
        сворачиваются в накопленную сумму.

        Returns:
            Фактически выделенная ёмкость

        Raises:
            AllocationFailureError: Если выделить не удалось даже wave_size элементов
        """
        if requested is None:
            requested = self._max_capacity
        if self._count > 0:
            self._flush()

        while True:
            capacity = self.optimal_item_count(requested)
            logger.debug(
                f"reset_buffer: capacity={capacity} items; {capacity * self._itemsize // _MB}MB"
            )
            try:
                if self._host is None or capacity > self._host.shape[0]:
                    self._host = np.zeros(capacity, dtype=self._dtype)
                self._count = 0
                # Старый буфер освобождаем до выделения нового
                self._device_buffer = None
                self._device_buffer = self.device.allocate(capacity, self._dtype)
            except (AllocationFailureError, MemoryError) as e:
                self._host = None
                self._capacity = 0
                if capacity // 2 < self._wave:
                    raise AllocationFailureError(
                        f"Cannot allocate reduction buffer of {capacity} items "
                        f"(wave size {self._wave}): {e}",
                        requested_items=capacity,
                    ) from e
                logger.error(
                    f"Could not allocate buffer of {capacity} items, retrying with {capacity // 2}"
                )
                self._max_capacity = capacity // 2
                requested = min(requested // 2, self._max_capacity)
                continue

            self._capacity = capacity
            return capacity

    def reset_result(self) -> None:
        """Обнуляет накопленную сумму и счётчик буфера; буферы сохраняются."""
        self._total = 0.0
        self._count = 0

    # --- Поток значений ---

    def _check_buffer(self) -> None:
        if self._host is None:
            raise EngineStateError(
                "Reduction buffer is not allocated: the last reset_buffer() failed"
            )

    def put(self, value: float) -> None:
        self._check_buffer()
        if self._count >= self._capacity:
            self._flush()
        self._host[self._count] = value
        self._count += 1

    def put_many(self, values: Iterable[float] | np.ndarray) -> None:
        """Эквивалент put() для каждого элемента values по порядку."""
        self._check_buffer()
        arr = np.asarray(values, dtype=self._dtype).ravel()
        pos = 0
        n = arr.shape[0]
        while pos < n:
            if self._count >= self._capacity:
                self._flush()
            take = min(self._capacity - self._count, n - pos)
            self._host[self._count:self._count + take] = arr[pos:pos + take]
            self._count += take
            pos += take

    def get_sum(self) -> float:
        """Сворачивает остаток буфера и возвращает накопленную сумму."""
        if self._count > 0:
            self._flush()
        return self._total

    # --- Редукция ---

    def _flush(self) -> None:
        """
        Сворачивает self._count значений буфера на устройстве.

        Ошибка устройства логируется, пакет при этом теряется, а сумма
        предыдущих пакетов остаётся нетронутой.
        """
        device = self.device
        kernel = device.get_or_load_kernel(self.config.program_id, self.config.entry_point)
        host = self._host
        buffer = self._device_buffer

        size = self._count
        global_size = self.optimal_item_count(size)
        host[size:global_size] = 0

        try:
            device.write(buffer, host[:global_size])

            while True:
                local_size = device.work_group_size(global_size)
                device.dispatch(
                    kernel, buffer, global_size, local_size, local_size * self._itemsize
                )
                size = global_size // local_size
                if global_size <= local_size or local_size <= 1:
                    break

                # Частичные суммы лежат по базовым смещениям групп
                device.gather(buffer, size, local_size)
                global_size = self.optimal_item_count(size)
                if size < global_size:
                    pad = global_size - size
                    host[:pad] = 0
                    device.write(buffer, host[:pad], offset=size)

            device.finish()
            result = device.read(buffer, 0, 1)
            self._total += float(result[0])
        except DeviceComputeError as e:
            self.failed_flushes += 1
            logger.error(f"Device error, {self._count} buffered values dropped: {e}")

        # Все значения буфера учтены (или потеряны) и могут быть перезаписаны
        self._count = 0
