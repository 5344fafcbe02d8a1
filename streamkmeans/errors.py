"""
Иерархия исключений streamkmeans.

Ошибки валидации входа (EmptyInputError, DimensionMismatchError,
UnknownStrategyError) фатальны и поднимаются до первой итерации.
AllocationFailureError обрабатывается внутри сумматора повторными попытками
с уменьшенной ёмкостью и наружу выходит, только когда ёмкость исчерпана.
DeviceComputeError сумматор логирует и не пробрасывает.
"""

from __future__ import annotations


class KMeansError(Exception):
    """Базовое исключение пакета."""


class EmptyInputError(KMeansError):
    """Нет точек или нет центроидов."""


class DimensionMismatchError(KMeansError):
    """Размерности точек и центроидов не совпадают."""


class UnknownStrategyError(KMeansError, ValueError):
    """Неизвестный идентификатор стратегии выполнения."""


class EngineStateError(KMeansError):
    """Операция недопустима в текущем состоянии движка."""


class DeviceError(KMeansError):
    """Базовая ошибка устройства."""


class AllocationFailureError(DeviceError):
    """Не удалось выделить буфер на хосте или на устройстве."""

    def __init__(self, message: str, requested_items: int | None = None) -> None:
        super().__init__(message)
        self.requested_items = requested_items


class DeviceComputeError(DeviceError):
    """Сбой запуска ядра или операции очереди во время редукции."""
