"""
Таймеры для замеров времени запуска.

Timer - контекстный менеджер на time.perf_counter(). Необязательная метка
позволяет вывести замер в виде "<label><секунды><suffix>", например
"timeCompute_cpu=0.123456;", как это делает командная строка.
"""
from __future__ import annotations
import time
from typing import Any


class Timer:
    """
    Контекстный менеджер для измерения времени выполнения кода.

    Пример использования:
        with Timer("time_cpu=") as t:
            ...
        logger.info(t.format())
    """

    def __init__(self, label: str = "", suffix: str = ";") -> None:
        self.label = label
        self.suffix = suffix
        self.start: float = 0.0
        self.end: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> Timer:
        self.start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.end = time.perf_counter()
        self.elapsed = self.end - self.start

    def format(self, precision: int = 6) -> str:
        """Строка замера с меткой: label + elapsed + suffix."""
        return f"{self.label}{self.elapsed:.{precision}f}{self.suffix}"
