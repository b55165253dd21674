"""
Toolchain environment injection for child build processes

The environment of a spawned Configure / make / nmake process is always
described by an EnvironmentOverlay built up front. Nothing in here touches
os.environ of the running process.
"""

import os
import platform
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple, Any

from ..errors import ToolchainNotFoundError
from ..utils import default_logger


# First one found wins
NDK_ROOT_VARIABLES = ("ANDROID_NDK", "NDK_HOME")

NDK_HOST_TAGS = {
    "linux": "linux-x86_64",
    "darwin": "darwin-x86_64",
    "windows": "windows-x86_64",
}

VCVARS_ARCH = {
    "x86_64": "x64",
    "aarch64": "arm64",
}

VSWHERE_COMPONENTS = {
    "x86_64": "Microsoft.VisualStudio.Component.VC.Tools.x86.x64",
    "aarch64": "Microsoft.VisualStudio.Component.VC.Tools.ARM64",
}


def _path_variable(env: Mapping[str, str]) -> Tuple[str, str]:
    """Return (key, value) of PATH, honouring Windows' case-insensitive names"""
    for key, value in env.items():
        if key.upper() == "PATH":
            return key, value
    return "PATH", ""


@dataclass(frozen=True)
class EnvironmentOverlay:
    """Immutable set of variables layered over (or replacing) a base environment"""

    variables: Tuple[Tuple[str, str], ...] = ()
    inherit: bool = True

    @classmethod
    def of(cls, variables: Optional[Mapping[str, str]] = None, inherit: bool = True) -> "EnvironmentOverlay":
        return cls(tuple((str(k), str(v)) for k, v in (variables or {}).items()), inherit)

    def as_dict(self) -> Dict[str, str]:
        return dict(self.variables)

    def is_empty(self) -> bool:
        return not self.variables and self.inherit

    def apply(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Produce the full environment for a child process

        Args:
            base: Environment to inherit from, defaults to os.environ

        Returns:
            A fresh dictionary; ``base`` is never modified
        """
        if base is None:
            base = os.environ
        env = dict(base) if self.inherit else {}
        env.update(self.as_dict())
        return env


class AndroidNdk:
    """An Android NDK installation located through environment configuration"""

    def __init__(self, root: Path, root_variable: str = "", root_value: Optional[str] = None):
        """
        Args:
            root: NDK installation directory
            root_variable: Name of the variable the root was read from
            root_value: Value of that variable as written, passed on as ANDROID_NDK_ROOT
        """
        self.root = Path(root)
        self.root_variable = root_variable
        self.root_value = str(root) if root_value is None else root_value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AndroidNdk":
        """
        Locate the NDK from ANDROID_NDK or NDK_HOME

        Raises:
            ToolchainNotFoundError: if neither variable is set or the root is missing
        """
        if environ is None:
            environ = os.environ

        for variable in NDK_ROOT_VARIABLES:
            value = environ.get(variable)
            if value:
                break
        else:
            raise ToolchainNotFoundError(
                "Android NDK", f"{' or '.join(NDK_ROOT_VARIABLES)} must be defined"
            )

        root = Path(value)
        if not root.is_dir():
            raise ToolchainNotFoundError("Android NDK", f"{variable} points to missing directory {root}")
        return cls(root, variable, value)

    def host_tag(self) -> str:
        return NDK_HOST_TAGS.get(platform.system().lower(), "linux-x86_64")

    def toolchain_dir(self) -> Path:
        """
        LLVM toolchain directory for the host

        Raises:
            ToolchainNotFoundError: if no prebuilt toolchain exists
        """
        prebuilt = self.root / "toolchains" / "llvm" / "prebuilt"
        toolchain = prebuilt / self.host_tag()
        if toolchain.is_dir():
            return toolchain

        # Apple silicon NDKs and custom layouts ship a single differently named host dir
        try:
            candidates = [p for p in prebuilt.iterdir() if p.is_dir()] if prebuilt.is_dir() else []
        except OSError as e:
            raise ToolchainNotFoundError(
                "Android NDK toolchain", f"cannot list {prebuilt}: {e.strerror or e}"
            ) from e
        if len(candidates) == 1:
            return candidates[0]

        raise ToolchainNotFoundError("Android NDK toolchain", f"no prebuilt LLVM toolchain under {prebuilt}")

    def environment_overlay(self, environ: Optional[Mapping[str, str]] = None) -> EnvironmentOverlay:
        """PATH with the toolchain's bin prepended, plus ANDROID_NDK_ROOT"""
        if environ is None:
            environ = os.environ

        path_key, current_path = _path_variable(environ)
        toolchain_bin = self.toolchain_dir() / "bin"
        new_path = str(toolchain_bin)
        if current_path:
            new_path = f"{toolchain_bin}{os.pathsep}{current_path}"

        return EnvironmentOverlay.of({
            path_key: new_path,
            "ANDROID_NDK_ROOT": self.root_value,
        })


@dataclass(frozen=True)
class MSVCToolchain:
    """A discovered MSVC toolchain: the directory holding cl.exe and its environment"""

    tools_dir: Path
    environment: EnvironmentOverlay = field(default_factory=EnvironmentOverlay)

    @property
    def nmake(self) -> Path:
        return self.tools_dir / "nmake.exe"


class MSVCEnvironment:
    """
    Searches the local machine for an MSVC toolchain matching a target/host pair

    vcvarsall.bat has no debug variant, the debug/release split is made by
    Configure alone.
    """

    def __init__(self,
                 target_arch: str,
                 host_arch: str,
                 logger: Any = None,
                 environ: Optional[Mapping[str, str]] = None):
        """
        Args:
            target_arch: Architecture the library is built for (x86_64, aarch64)
            host_arch: Architecture of the build machine
            logger: Logger instance
            environ: Environment of the current process, defaults to os.environ
        """
        if target_arch not in VCVARS_ARCH:
            raise ValueError(f"Unsupported MSVC target architecture: {target_arch}")
        if host_arch not in VCVARS_ARCH:
            raise ValueError(f"Unsupported MSVC host architecture: {host_arch}")

        self.target_arch = target_arch
        self.host_arch = host_arch
        self.logger = logger or default_logger()
        self.environ = os.environ if environ is None else environ

    def vcvars_argument(self) -> str:
        """Architecture argument for vcvarsall.bat, e.g. ``x64`` or ``x64_arm64``"""
        host = VCVARS_ARCH[self.host_arch]
        target = VCVARS_ARCH[self.target_arch]
        if host == target:
            return host
        return f"{host}_{target}"

    def discover(self) -> MSVCToolchain:
        """
        Capture the toolchain environment and find the compiler directory

        Raises:
            ToolchainNotFoundError: if no toolchain or no cl.exe could be found
        """
        env = self._developer_prompt_environment()
        if env is None:
            env = self._capture_vcvars_environment()

        _, path = _path_variable(env)
        cl = shutil.which("cl.exe", path=path) or shutil.which("cl", path=path)
        if not cl:
            raise ToolchainNotFoundError("MSVC toolchain", "cl.exe is not on the toolchain PATH")

        tools_dir = Path(cl).parent
        self.logger.debug(f"MSVC tools directory: {tools_dir}")
        return MSVCToolchain(
            tools_dir=tools_dir,
            environment=EnvironmentOverlay.of(env, inherit=False),
        )

    def _developer_prompt_environment(self) -> Optional[Dict[str, str]]:
        """Reuse the current environment when already inside a matching VS prompt"""
        if "VCToolsInstallDir" not in self.environ:
            return None
        prompt_arch = self.environ.get("VSCMD_ARG_TGT_ARCH", "").lower()
        if prompt_arch != VCVARS_ARCH[self.target_arch]:
            return None
        self.logger.debug(f"Using MSVC environment of the current developer prompt ({prompt_arch})")
        return dict(self.environ)

    def _find_vcvarsall(self) -> Optional[Path]:
        """Find vcvarsall.bat, trying vswhere first"""
        program_files = self.environ.get("ProgramFiles(x86)", "C:/Program Files (x86)")
        vswhere_path = Path(program_files) / "Microsoft Visual Studio/Installer/vswhere.exe"

        if vswhere_path.exists():
            cmd = [
                str(vswhere_path), "-latest", "-prerelease", "-products", "*",
                "-requires", VSWHERE_COMPONENTS[self.target_arch],
                "-property", "installationPath"
            ]
            try:
                result = subprocess.run(cmd, capture_output=True, text=True, check=True)
            except (subprocess.CalledProcessError, OSError) as e:
                self.logger.debug(f"vswhere failed: {e}")
            else:
                install_path = result.stdout.strip()
                if install_path:
                    vcvarsall = Path(install_path) / "VC/Auxiliary/Build/vcvarsall.bat"
                    if vcvarsall.exists():
                        return vcvarsall

        common_paths = [
            "C:/Program Files/Microsoft Visual Studio/2022/Community/VC/Auxiliary/Build/vcvarsall.bat",
            "C:/Program Files/Microsoft Visual Studio/2022/Professional/VC/Auxiliary/Build/vcvarsall.bat",
            "C:/Program Files/Microsoft Visual Studio/2022/Enterprise/VC/Auxiliary/Build/vcvarsall.bat",
            "C:/Program Files/Microsoft Visual Studio/2022/BuildTools/VC/Auxiliary/Build/vcvarsall.bat",
            "C:/Program Files (x86)/Microsoft Visual Studio/2019/Community/VC/Auxiliary/Build/vcvarsall.bat",
            "C:/Program Files (x86)/Microsoft Visual Studio/2019/Professional/VC/Auxiliary/Build/vcvarsall.bat",
            "C:/Program Files (x86)/Microsoft Visual Studio/2019/Enterprise/VC/Auxiliary/Build/vcvarsall.bat",
        ]
        for path_str in common_paths:
            path = Path(path_str)
            if path.exists():
                return path

        return None

    def _capture_vcvars_environment(self) -> Dict[str, str]:
        vcvarsall = self._find_vcvarsall()
        if vcvarsall is None:
            raise ToolchainNotFoundError(
                "MSVC toolchain", "vcvarsall.bat not found, install Visual Studio with C++ tools"
            )

        cmd = f'"{vcvarsall}" {self.vcvars_argument()} && set'
        self.logger.debug(f"Capturing MSVC environment: {cmd}")
        result = subprocess.run(cmd, shell=True, capture_output=True, text=True, check=False)
        if result.returncode != 0:
            raise ToolchainNotFoundError(
                "MSVC toolchain", f"{vcvarsall} {self.vcvars_argument()} exited with {result.returncode}"
            )
        return self.parse_environment(result.stdout)

    @staticmethod
    def parse_environment(output: str) -> Dict[str, str]:
        """Parse the ``NAME=value`` lines printed by ``set``"""
        env = {}
        for line in output.splitlines():
            if "=" not in line:
                continue
            key, value = line.split("=", 1)
            # vcvarsall banner lines never start a valid variable name
            if not key or key.startswith(("*", " ")):
                continue
            env[key] = value
        return env


__all__ = [
    "AndroidNdk",
    "EnvironmentOverlay",
    "MSVCEnvironment",
    "MSVCToolchain",
    "NDK_ROOT_VARIABLES",
]
