"""
Тесты эмулируемого устройства и общих примитивов контекста.
"""

import numpy as np
import pytest

from streamkmeans.device.base import floor_power_of_two, is_power_of_two
from streamkmeans.device.host import HostDeviceContext
from streamkmeans.device.kernels import REDUCE_PROGRAM, host_tree_reduce
from streamkmeans.errors import AllocationFailureError, DeviceComputeError, DeviceError


class TestPowerOfTwoHelpers:

    def test_floor_power_of_two(self):
        assert floor_power_of_two(1) == 1
        assert floor_power_of_two(1000) == 512
        assert floor_power_of_two(1024) == 1024
        assert floor_power_of_two(0) == 0

    def test_is_power_of_two(self):
        assert is_power_of_two(64)
        assert not is_power_of_two(0)
        assert not is_power_of_two(96)


class TestHostKernel:
    """Ядро пишет сумму группы по базовому смещению группы."""

    def test_group_sums_at_base_offsets(self):
        buffer = np.arange(16, dtype=np.float32)

        host_tree_reduce(buffer, global_size=16, local_size=4)

        np.testing.assert_array_equal(buffer[[0, 4, 8, 12]], [6, 22, 38, 54])

    def test_tail_beyond_global_size_untouched(self):
        buffer = np.ones(16, dtype=np.float32)

        host_tree_reduce(buffer, global_size=8, local_size=8)

        assert buffer[0] == 8
        np.testing.assert_array_equal(buffer[8:], np.ones(8))


class TestHostDeviceContext:

    def test_capabilities(self, host_device):
        assert host_device.max_memory_bytes() == 4096
        assert host_device.wave_size() == 4
        assert host_device.work_group_size(256) == 8
        assert host_device.work_group_size(4) == 4
        assert host_device.work_group_size(1) == 1

    def test_invalid_geometry_rejected(self):
        with pytest.raises(ValueError):
            HostDeviceContext(wave_size=6)
        with pytest.raises(ValueError):
            HostDeviceContext(max_work_group_size=100)

    def test_wave_larger_than_group_rejected(self):
        with pytest.raises(ValueError, match="exceeds max_work_group_size"):
            HostDeviceContext(memory_bytes=4096, wave_size=16, max_work_group_size=8)

    def test_kernel_cache(self, host_device):
        k1 = host_device.get_or_load_kernel(REDUCE_PROGRAM, "sum_float")
        k2 = host_device.get_or_load_kernel(REDUCE_PROGRAM, "sum_float")

        assert k1 is k2
        assert host_device.cached_kernels == [(REDUCE_PROGRAM, "sum_float")]

    def test_unknown_kernel(self, host_device):
        with pytest.raises(DeviceError):
            host_device.get_or_load_kernel(REDUCE_PROGRAM, "sum_int")

    def test_allocation_limits(self):
        device = HostDeviceContext(memory_bytes=1024, allocation_limit_bytes=128)

        buffer = device.allocate(32, np.float32)
        assert buffer.shape == (32,)
        assert device.allocations == 1

        with pytest.raises(AllocationFailureError) as exc:
            device.allocate(33, np.float32)
        assert exc.value.requested_items == 33

    def test_write_read_gather(self, host_device):
        buffer = host_device.allocate(16, np.float32)
        host_device.write(buffer, np.arange(16, dtype=np.float32))

        host_device.gather(buffer, count=4, stride=4)

        np.testing.assert_array_equal(host_device.read(buffer, 0, 4), [0, 4, 8, 12])

    def test_write_overflow(self, host_device):
        buffer = host_device.allocate(8, np.float32)
        with pytest.raises(DeviceComputeError):
            host_device.write(buffer, np.zeros(4, dtype=np.float32), offset=6)

    def test_dispatch_checks_launch(self, host_device):
        kernel = host_device.get_or_load_kernel(REDUCE_PROGRAM, "sum_float")
        buffer = host_device.allocate(16, np.float32)

        with pytest.raises(DeviceComputeError):
            # группа больше максимума устройства (8)
            host_device.dispatch(kernel, buffer, 16, 16, 64)
        with pytest.raises(DeviceComputeError):
            host_device.dispatch(kernel, buffer, 12, 8, 32)
        with pytest.raises(DeviceComputeError):
            # мало локальной памяти под 8 float
            host_device.dispatch(kernel, buffer, 16, 8, 16)
        assert host_device.dispatches == 0

    def test_dispatch_reduces(self, host_device):
        kernel = host_device.get_or_load_kernel(REDUCE_PROGRAM, "sum_float")
        buffer = host_device.allocate(16, np.float32)
        host_device.write(buffer, np.ones(16, dtype=np.float32))

        host_device.dispatch(kernel, buffer, 16, 8, 32)
        host_device.finish()

        np.testing.assert_array_equal(host_device.read(buffer, 0, 1), [8])
        np.testing.assert_array_equal(host_device.read(buffer, 8, 1), [8])
