import platform

import pytest

from library_builder.builders import compiler_identifier
from library_builder.errors import UnsupportedPlatformError
from library_builder.platform import LibraryTarget, PlatformDetector


def _patch_host(monkeypatch, system: str, machine: str):
    monkeypatch.setattr(platform, "system", lambda: system)
    monkeypatch.setattr(platform, "machine", lambda: machine)


@pytest.mark.parametrize(
    "target, expected",
    [
        (LibraryTarget.X8664_APPLE_DARWIN, "darwin64-x86_64-cc"),
        (LibraryTarget.AARCH64_APPLE_DARWIN, "darwin64-arm64-cc"),
        (LibraryTarget.X8664_PC_WINDOWS_MSVC, "VC-WIN64A"),
        (LibraryTarget.AARCH64_PC_WINDOWS_MSVC, "VC-WIN64-ARM"),
        (LibraryTarget.X8664_UNKNOWN_LINUX_GNU, "linux-x86_64-clang"),
        (LibraryTarget.AARCH64_UNKNOWN_LINUX_GNU, "linux-aarch64"),
        (LibraryTarget.AARCH64_LINUX_ANDROID, "android-arm64"),
    ],
)
def test_compiler_identifier_for_every_target(target, expected):
    assert compiler_identifier(target) == expected


def test_compiler_identifier_covers_every_target():
    identifiers = {compiler_identifier(target) for target in LibraryTarget}
    assert len(identifiers) == len(LibraryTarget) == 7


def test_os_family_partitions_targets():
    windows = [t for t in LibraryTarget if t.is_windows()]
    android = [t for t in LibraryTarget if t.is_android()]
    unix_non_android = [t for t in LibraryTarget if t.is_unix() and not t.is_android()]

    assert len(windows) == 2
    assert len(android) == 1
    assert len(unix_non_android) == 4
    for target in LibraryTarget:
        assert target.is_windows() != target.is_unix()
    assert LibraryTarget.AARCH64_LINUX_ANDROID.is_unix()


def test_target_architecture():
    assert LibraryTarget.AARCH64_PC_WINDOWS_MSVC.arch == "aarch64"
    assert LibraryTarget.X8664_APPLE_DARWIN.arch == "x86_64"
    assert str(LibraryTarget.AARCH64_LINUX_ANDROID) == "aarch64-linux-android"


@pytest.mark.parametrize(
    "system, machine, expected",
    [
        ("Linux", "x86_64", LibraryTarget.X8664_UNKNOWN_LINUX_GNU),
        ("Linux", "aarch64", LibraryTarget.AARCH64_UNKNOWN_LINUX_GNU),
        ("Darwin", "x86_64", LibraryTarget.X8664_APPLE_DARWIN),
        ("Darwin", "arm64", LibraryTarget.AARCH64_APPLE_DARWIN),
        ("Windows", "AMD64", LibraryTarget.X8664_PC_WINDOWS_MSVC),
        ("Windows", "ARM64", LibraryTarget.AARCH64_PC_WINDOWS_MSVC),
    ],
)
def test_for_current_platform(monkeypatch, system, machine, expected):
    _patch_host(monkeypatch, system, machine)

    assert LibraryTarget.for_current_platform() is expected


def test_unsupported_host_raises(monkeypatch):
    _patch_host(monkeypatch, "FreeBSD", "riscv64")

    with pytest.raises(UnsupportedPlatformError):
        LibraryTarget.for_current_platform()


def test_detect_reports_normalized_names(monkeypatch):
    _patch_host(monkeypatch, "Darwin", "arm64")

    info = PlatformDetector().detect()

    assert info["platform"] == "macos"
    assert info["arch"] == "aarch64"
    assert info["machine"] == "arm64"
