"""
Генератор синтетических наборов точек для KMeans.

Создаёт кластеризованные данные через sklearn.make_blobs и сохраняет
их в формате points_io: файл точек и файл начальных центроидов.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from sklearn.datasets import make_blobs
from sklearn.preprocessing import StandardScaler

from streamkmeans.data.points_io import write_centroids, write_points

logger = logging.getLogger(__name__)


@dataclass
class GeneratedDataset:
    """Контейнер для сгенерированных данных."""

    data: np.ndarray
    labels: np.ndarray
    centers: np.ndarray


def generate_blobs(
    N: int,
    D: int,
    K: int,
    cluster_std: float = 1.0,
    seed: int = 42,
    center_box_range: tuple[float, float] = (-3.0, 3.0),
    noise_std: float = 0.1,
) -> GeneratedDataset:
    """
    Генерация датасета с помощью make_blobs.

    Args:
        N: Количество точек
        D: Размерность пространства
        K: Количество кластеров
        cluster_std: Стандартное отклонение кластеров
        seed: Seed для воспроизводимости
        center_box_range: Диапазон расположения центров кластеров
        noise_std: Стандартное отклонение шума после нормализации (0 - без шума)

    Returns:
        GeneratedDataset: точки (N, D), истинные метки (N,), центры (K, D)
    """
    data, labels, centers = make_blobs(
        n_samples=N,
        n_features=D,
        centers=K,
        cluster_std=cluster_std,
        center_box=center_box_range,
        random_state=seed,
        return_centers=True,
    )

    scaler = StandardScaler()
    data = scaler.fit_transform(data)
    centers = scaler.transform(centers)

    if noise_std > 0:
        rng = np.random.default_rng(seed)
        # Центры не шумим: они используются как начальные центроиды
        data = data + rng.normal(0.0, noise_std, data.shape)

    return GeneratedDataset(data=data, labels=labels.astype(np.int32), centers=centers)


def write_dataset(out_dir: str | Path, dataset: GeneratedDataset) -> tuple[Path, Path]:
    """
    Сохраняет точки (с истинными метками) и центры в out_dir.

    Returns:
        Пути (points.txt, centroids.txt)
    """
    out_dir = Path(out_dir)
    points_path = out_dir / "points.txt"
    centroids_path = out_dir / "centroids.txt"

    write_points(points_path, dataset.data, dataset.labels)
    write_centroids(centroids_path, dataset.centers)

    N, D = dataset.data.shape
    logger.info(f"Dataset N={N:,} D={D} K={dataset.centers.shape[0]} saved to {out_dir}")
    return points_path, centroids_path
