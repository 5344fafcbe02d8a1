"""
Чтение и запись точек и центроидов в текстовом формате.

Формат входных файлов:
- одна точка (центроид) на строку, координаты через пробелы;
- строки, начинающиеся с #, и пустые строки пропускаются;
- при labeled=True первая колонка строки - метка кластера.

Выходной файл точек: метка кластера + координаты в каждой строке.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from streamkmeans.errors import DimensionMismatchError

logger = logging.getLogger(__name__)


def _read_vectors(path: str | Path, labeled: bool = False) -> tuple[np.ndarray, np.ndarray | None]:
    rows: list[list[float]] = []
    labels: list[int] = []

    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            # Пропускаем комментарии и пустые строки
            if not line or line.startswith("#"):
                continue

            parts = line.split()
            if labeled:
                labels.append(int(parts[0]))
                parts = parts[1:]
            values = [float(p) for p in parts]

            if rows and len(values) != len(rows[0]):
                raise DimensionMismatchError(
                    f"{path}:{lineno}: expected {len(rows[0])} coordinates, got {len(values)}"
                )
            rows.append(values)

    if not rows:
        return np.empty((0, 0), dtype=np.float64), None

    X = np.array(rows, dtype=np.float64)
    return X, (np.array(labels, dtype=np.int32) if labeled else None)


def read_points(path: str | Path, labeled: bool = False) -> np.ndarray:
    """
    Загружает точки из файла.

    Args:
        path: Путь к файлу
        labeled: Первая колонка - метка (например, выход write_points)

    Returns:
        Массив (N, D); пустой массив, если точек в файле нет
    """
    X, _ = _read_vectors(path, labeled=labeled)
    logger.info(f"Points loaded from {path}: shape={X.shape}")
    return X


def read_centroids(path: str | Path) -> np.ndarray:
    """Загружает начальные центроиды, форма (K, D)."""
    C, _ = _read_vectors(path)
    logger.info(f"Centroids loaded from {path}: shape={C.shape}")
    return C


def write_points(path: str | Path, X: np.ndarray, labels: np.ndarray) -> None:
    """Записывает точки с итоговыми метками кластеров."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for label, row in zip(labels, X):
            f.write(f"{int(label)} " + " ".join(repr(float(v)) for v in row))
            f.write("\n")
    logger.info(f"Points written to {path}")


def write_centroids(path: str | Path, centroids: np.ndarray) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for row in centroids:
            f.write(" ".join(repr(float(v)) for v in row))
            f.write("\n")
    logger.info(f"Centroids written to {path}")
