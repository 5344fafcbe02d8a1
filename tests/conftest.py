"""
Общие фикстуры для всех тестов.
"""

import numpy as np
import pytest

from streamkmeans.device.host import HostDeviceContext


@pytest.fixture
def small_dataset():
    """Фикстура с небольшим тестовым датасетом (2D, 2 кластера)."""
    np.random.seed(42)
    # Два явно разделённых кластера
    cluster1 = np.random.randn(30, 2) + [0, 0]
    cluster2 = np.random.randn(30, 2) + [5, 5]
    X = np.vstack([cluster1, cluster2])
    initial_centroids = np.array([
        [-1.0, -1.0],
        [6.0, 6.0],
    ])
    return X, initial_centroids


@pytest.fixture
def medium_dataset():
    """Фикстура со средним тестовым датасетом (10D, 3 кластера)."""
    np.random.seed(42)
    cluster1 = np.random.randn(50, 10) + [0] * 10
    cluster2 = np.random.randn(50, 10) + [5] * 10
    cluster3 = np.random.randn(50, 10) + [-5] * 10
    X = np.vstack([cluster1, cluster2, cluster3])
    initial_centroids = np.array([
        [-1.0] * 10,
        [6.0] * 10,
        [-6.0] * 10,
    ])
    return X, initial_centroids


@pytest.fixture
def four_points():
    """Четыре точки в 2D: две у y=0 и две у y=10."""
    X = np.array([
        [0.0, 0.0],
        [1.0, 0.0],
        [0.0, 10.0],
        [1.0, 10.0],
    ])
    initial_centroids = np.array([
        [0.0, 0.0],
        [0.0, 10.0],
    ])
    return X, initial_centroids


@pytest.fixture
def host_device():
    """
    Маленькое эмулируемое устройство: 4 КБ памяти, волна 4, группа до 8.

    max_capacity сумматора float32 = 1024, стартовая ёмкость = 256.
    """
    return HostDeviceContext(memory_bytes=4096, wave_size=4, max_work_group_size=8)
