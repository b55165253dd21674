"""
Target platforms and host detection
"""

import platform
import sys
from enum import Enum
from typing import Dict, Any

from ..errors import UnsupportedPlatformError


class LibraryTarget(str, Enum):
    """The seven OS / architecture / ABI combinations a library can be built for"""

    X8664_APPLE_DARWIN = "x86_64-apple-darwin"
    AARCH64_APPLE_DARWIN = "aarch64-apple-darwin"
    X8664_PC_WINDOWS_MSVC = "x86_64-pc-windows-msvc"
    AARCH64_PC_WINDOWS_MSVC = "aarch64-pc-windows-msvc"
    X8664_UNKNOWN_LINUX_GNU = "x86_64-unknown-linux-gnu"
    AARCH64_UNKNOWN_LINUX_GNU = "aarch64-unknown-linux-gnu"
    AARCH64_LINUX_ANDROID = "aarch64-linux-android"

    def __str__(self) -> str:
        return self.value

    @property
    def arch(self) -> str:
        """Architecture component of the triple (x86_64 or aarch64)"""
        return self.value.split("-", 1)[0]

    def is_windows(self) -> bool:
        return self in _WINDOWS_TARGETS

    def is_unix(self) -> bool:
        # Android builds with make like every other non-Windows target
        return not self.is_windows()

    def is_android(self) -> bool:
        return self is LibraryTarget.AARCH64_LINUX_ANDROID

    def is_mac(self) -> bool:
        return self in (LibraryTarget.X8664_APPLE_DARWIN, LibraryTarget.AARCH64_APPLE_DARWIN)

    @classmethod
    def for_current_platform(cls) -> "LibraryTarget":
        """Target matching the machine this process runs on"""
        return PlatformDetector().target()

    @classmethod
    def for_current_host(cls) -> "LibraryTarget":
        return cls.for_current_platform()


_WINDOWS_TARGETS = frozenset({
    LibraryTarget.X8664_PC_WINDOWS_MSVC,
    LibraryTarget.AARCH64_PC_WINDOWS_MSVC,
})

_HOST_TARGETS = {
    ("linux", "x86_64"): LibraryTarget.X8664_UNKNOWN_LINUX_GNU,
    ("linux", "aarch64"): LibraryTarget.AARCH64_UNKNOWN_LINUX_GNU,
    ("macos", "x86_64"): LibraryTarget.X8664_APPLE_DARWIN,
    ("macos", "aarch64"): LibraryTarget.AARCH64_APPLE_DARWIN,
    ("windows", "x86_64"): LibraryTarget.X8664_PC_WINDOWS_MSVC,
    ("windows", "aarch64"): LibraryTarget.AARCH64_PC_WINDOWS_MSVC,
}


class PlatformDetector:
    """Detects and provides information about the current platform"""

    def detect(self) -> Dict[str, Any]:
        """
        Detect current platform and architecture

        Returns:
            Dictionary with platform information
        """
        return {
            "os": platform.system(),
            "platform": self._get_platform_name(),
            "arch": self._get_architecture(),
            "machine": platform.machine(),
            "python_version": sys.version,
        }

    def target(self) -> LibraryTarget:
        """
        Resolve the host into a LibraryTarget

        Raises:
            UnsupportedPlatformError: if the host is not a supported combination
        """
        key = (self._get_platform_name(), self._get_architecture())
        try:
            return _HOST_TARGETS[key]
        except KeyError:
            raise UnsupportedPlatformError(
                f"Unsupported host platform: {platform.system()} ({platform.machine()})"
            ) from None

    def _get_platform_name(self) -> str:
        """Get normalized platform name"""
        system = platform.system().lower()

        if system == "darwin":
            return "macos"
        return system

    def _get_architecture(self) -> str:
        """Get normalized architecture name"""
        machine = platform.machine().lower()
        if machine in ["aarch64", "arm64"]:
            return "aarch64"
        if machine in ["x86_64", "amd64", "x64"]:
            return "x86_64"
        return machine


from .toolchains import (  # noqa: E402
    AndroidNdk,
    EnvironmentOverlay,
    MSVCEnvironment,
    MSVCToolchain,
)

__all__ = [
    "LibraryTarget",
    "PlatformDetector",
    "AndroidNdk",
    "EnvironmentOverlay",
    "MSVCEnvironment",
    "MSVCToolchain",
]
