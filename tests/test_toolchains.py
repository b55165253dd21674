import os
import subprocess
from pathlib import Path

import pytest

from library_builder.errors import ToolchainNotFoundError
from library_builder.platform import AndroidNdk, EnvironmentOverlay, MSVCEnvironment
from library_builder.platform import toolchains


def _make_ndk(root: Path, host_tag: str = "linux-x86_64") -> Path:
    (root / "toolchains" / "llvm" / "prebuilt" / host_tag / "bin").mkdir(parents=True)
    return root


def test_overlay_apply_does_not_touch_base():
    base = {"PATH": "/usr/bin", "HOME": "/home/me"}
    overlay = EnvironmentOverlay.of({"PATH": "/ndk/bin:/usr/bin", "ANDROID_NDK_ROOT": "/ndk"})

    env = overlay.apply(base)

    assert env == {"PATH": "/ndk/bin:/usr/bin", "HOME": "/home/me", "ANDROID_NDK_ROOT": "/ndk"}
    assert base == {"PATH": "/usr/bin", "HOME": "/home/me"}


def test_overlay_without_inheritance_drops_base():
    overlay = EnvironmentOverlay.of({"INCLUDE": "C:\\vc\\include"}, inherit=False)

    assert overlay.apply({"PATH": "/usr/bin"}) == {"INCLUDE": "C:\\vc\\include"}
    assert not overlay.is_empty()


def test_empty_overlay():
    assert EnvironmentOverlay().is_empty()
    assert not EnvironmentOverlay(inherit=False).is_empty()


def test_overlay_is_immutable():
    overlay = EnvironmentOverlay.of({"A": "1"})

    with pytest.raises(AttributeError):
        overlay.inherit = False


def test_ndk_from_android_ndk_variable(tmp_path):
    root = _make_ndk(tmp_path / "ndk")

    ndk = AndroidNdk.from_env({"ANDROID_NDK": str(root), "NDK_HOME": "/elsewhere"})

    assert ndk.root == root
    assert ndk.root_variable == "ANDROID_NDK"


def test_ndk_falls_back_to_ndk_home(tmp_path):
    root = _make_ndk(tmp_path / "ndk")

    ndk = AndroidNdk.from_env({"NDK_HOME": str(root)})

    assert ndk.root_variable == "NDK_HOME"


def test_ndk_missing_variables_raise():
    with pytest.raises(ToolchainNotFoundError, match="ANDROID_NDK or NDK_HOME"):
        AndroidNdk.from_env({"PATH": "/usr/bin"})


def test_ndk_missing_root_raises(tmp_path):
    with pytest.raises(ToolchainNotFoundError, match="missing directory"):
        AndroidNdk.from_env({"ANDROID_NDK": str(tmp_path / "absent")})


def test_ndk_missing_toolchain_raises(tmp_path):
    ndk = AndroidNdk(tmp_path)

    with pytest.raises(ToolchainNotFoundError, match="toolchain"):
        ndk.toolchain_dir()


def test_ndk_single_prebuilt_directory_is_used(tmp_path, monkeypatch):
    root = _make_ndk(tmp_path, host_tag="darwin-arm64")
    monkeypatch.setattr(AndroidNdk, "host_tag", lambda self: "linux-x86_64")

    assert AndroidNdk(root).toolchain_dir().name == "darwin-arm64"


def test_ndk_unreadable_prebuilt_raises(tmp_path, monkeypatch):
    root = _make_ndk(tmp_path, host_tag="darwin-arm64")
    monkeypatch.setattr(AndroidNdk, "host_tag", lambda self: "linux-x86_64")

    def deny_listing(self):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(Path, "iterdir", deny_listing)

    with pytest.raises(ToolchainNotFoundError, match="cannot list"):
        AndroidNdk(root).toolchain_dir()


def test_ndk_root_is_passed_on_as_written(tmp_path, monkeypatch):
    root = _make_ndk(tmp_path / "ndk")
    monkeypatch.setattr(AndroidNdk, "host_tag", lambda self: "linux-x86_64")

    ndk = AndroidNdk.from_env({"ANDROID_NDK": f"{root}/"})

    assert ndk.root == root
    assert ndk.environment_overlay({"PATH": "/usr/bin"}).as_dict()["ANDROID_NDK_ROOT"] == f"{root}/"


def test_ndk_overlay_prepends_toolchain_bin(tmp_path, monkeypatch):
    root = _make_ndk(tmp_path)
    monkeypatch.setattr(AndroidNdk, "host_tag", lambda self: "linux-x86_64")

    overlay = AndroidNdk(root).environment_overlay({"PATH": "/usr/bin"})
    variables = overlay.as_dict()

    first_entry = variables["PATH"].split(os.pathsep)[0]
    assert first_entry.endswith("bin")
    assert Path(first_entry) == root / "toolchains" / "llvm" / "prebuilt" / "linux-x86_64" / "bin"
    assert variables["PATH"].endswith("/usr/bin")
    assert variables["ANDROID_NDK_ROOT"] == str(root)
    assert overlay.inherit


def test_vcvars_argument():
    assert MSVCEnvironment("x86_64", "x86_64", environ={}).vcvars_argument() == "x64"
    assert MSVCEnvironment("aarch64", "x86_64", environ={}).vcvars_argument() == "x64_arm64"


def test_msvc_rejects_unknown_architecture():
    with pytest.raises(ValueError):
        MSVCEnvironment("riscv64", "x86_64", environ={})


def test_parse_environment():
    output = "\n".join([
        "**********************************************************************",
        "** Visual Studio 2022 Developer Command Prompt v17.0",
        "[vcvarsall.bat] Environment initialized for: 'x64'",
        "INCLUDE=C:\\VC\\include",
        "Path=C:\\VC\\bin;C:\\Windows",
        "EMPTY=",
    ])

    env = MSVCEnvironment.parse_environment(output)

    assert env == {"INCLUDE": "C:\\VC\\include", "Path": "C:\\VC\\bin;C:\\Windows", "EMPTY": ""}


def test_discover_reuses_matching_developer_prompt(tmp_path, monkeypatch):
    cl = tmp_path / "cl.exe"
    cl.touch()
    environ = {"VCToolsInstallDir": "C:\\VC", "VSCMD_ARG_TGT_ARCH": "x64", "PATH": str(tmp_path)}
    monkeypatch.setattr(toolchains.shutil, "which", lambda name, path=None: str(cl) if name == "cl.exe" else None)

    def fail_run(*args, **kwargs):
        raise AssertionError("vcvarsall must not run inside a developer prompt")

    monkeypatch.setattr(subprocess, "run", fail_run)

    toolchain = MSVCEnvironment("x86_64", "x86_64", environ=environ).discover()

    assert toolchain.tools_dir == tmp_path
    assert toolchain.nmake == tmp_path / "nmake.exe"
    assert toolchain.environment.as_dict() == environ
    assert not toolchain.environment.inherit


def test_discover_captures_vcvars_environment(tmp_path, monkeypatch):
    vcvarsall = tmp_path / "vcvarsall.bat"
    vcvarsall.touch()
    tools = tmp_path / "bin"
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, f"PATH={tools}\nLIB=C:\\VC\\lib\n", "")

    monkeypatch.setattr(MSVCEnvironment, "_find_vcvarsall", lambda self: vcvarsall)
    monkeypatch.setattr(subprocess, "run", fake_run)
    monkeypatch.setattr(toolchains.shutil, "which", lambda name, path=None: str(tools / name) if path == str(tools) else None)

    toolchain = MSVCEnvironment("aarch64", "x86_64", environ={}).discover()

    assert calls == [f'"{vcvarsall}" x64_arm64 && set']
    assert toolchain.tools_dir == tools
    assert toolchain.environment.as_dict() == {"PATH": str(tools), "LIB": "C:\\VC\\lib"}


def test_discover_without_visual_studio_raises(monkeypatch):
    monkeypatch.setattr(MSVCEnvironment, "_find_vcvarsall", lambda self: None)

    with pytest.raises(ToolchainNotFoundError, match="vcvarsall"):
        MSVCEnvironment("x86_64", "x86_64", environ={}).discover()


def test_discover_without_compiler_raises(monkeypatch):
    environ = {"VCToolsInstallDir": "C:\\VC", "VSCMD_ARG_TGT_ARCH": "x64", "PATH": ""}
    monkeypatch.setattr(toolchains.shutil, "which", lambda name, path=None: None)

    with pytest.raises(ToolchainNotFoundError, match="cl.exe"):
        MSVCEnvironment("x86_64", "x86_64", environ=environ).discover()
