"""
Исходники ядер редукции.

Контракт ядра: один буфер на чтение/запись и локальная (shared) память
размером local_size * itemsize. Каждая рабочая группа сворачивает свои
local_size элементов деревом и пишет одну частичную сумму по базовому
смещению группы; остальные элементы области группы после запуска
не определены. Группа трогает только свою область буфера, поэтому
группы одного запуска не конфликтуют.
"""

from __future__ import annotations

import numpy as np

REDUCE_PROGRAM = "streamkmeans.reduce"

_REDUCE_SOURCE = r"""
extern "C" __global__
void sum_float(float* __restrict__ data) {
    extern __shared__ float scratch_f[];
    const unsigned int lid = threadIdx.x;
    const size_t base = (size_t)blockIdx.x * (size_t)blockDim.x;

    scratch_f[lid] = data[base + lid];
    __syncthreads();

    // blockDim.x - степень двойки
    for (unsigned int s = blockDim.x >> 1; s > 0; s >>= 1) {
        if (lid < s) scratch_f[lid] += scratch_f[lid + s];
        __syncthreads();
    }

    if (lid == 0) data[base] = scratch_f[0];
}

extern "C" __global__
void sum_double(double* __restrict__ data) {
    extern __shared__ double scratch_d[];
    const unsigned int lid = threadIdx.x;
    const size_t base = (size_t)blockIdx.x * (size_t)blockDim.x;

    scratch_d[lid] = data[base + lid];
    __syncthreads();

    for (unsigned int s = blockDim.x >> 1; s > 0; s >>= 1) {
        if (lid < s) scratch_d[lid] += scratch_d[lid + s];
        __syncthreads();
    }

    if (lid == 0) data[base] = scratch_d[0];
}
"""

CUDA_PROGRAMS: dict[str, str] = {
    REDUCE_PROGRAM: _REDUCE_SOURCE,
}


def host_tree_reduce(buffer: np.ndarray, global_size: int, local_size: int) -> None:
    """
    NumPy-вариант ядра sum_float/sum_double.

    Повторяет схему ядра: копия группы в «локальную память», попарное
    сложение половин до одного элемента, запись по базовому смещению группы.
    """
    groups = buffer[:global_size].reshape(-1, local_size)
    scratch = groups.copy()

    width = local_size
    while width > 1:
        half = width // 2
        scratch[:, :half] += scratch[:, half:width]
        width = half

    groups[:, 0] = scratch[:, 0]


HOST_PROGRAMS = {
    REDUCE_PROGRAM: {
        "sum_float": host_tree_reduce,
        "sum_double": host_tree_reduce,
    },
}
