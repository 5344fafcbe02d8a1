from .base import DeviceContext
from .host import HostDeviceContext
from .gpu_cupy import CuPyDeviceContext, gpu_available

__all__ = [
    "DeviceContext",
    "HostDeviceContext",
    "CuPyDeviceContext",
    "gpu_available",
]
