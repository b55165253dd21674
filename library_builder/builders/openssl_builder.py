"""
OpenSSL-specific builder implementation
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence

from ..errors import BuildDirectoryError, CompilationError, ConfigurationError, ToolchainNotFoundError
from ..models import GitLocation, LibraryCompilationContext, LibraryLocation
from ..platform import AndroidNdk, EnvironmentOverlay, LibraryTarget, MSVCEnvironment
from .base_builder import BaseBuilder


# Names of OpenSSL's own Configure targets
OPENSSL_TARGETS = {
    LibraryTarget.X8664_APPLE_DARWIN: "darwin64-x86_64-cc",
    LibraryTarget.AARCH64_APPLE_DARWIN: "darwin64-arm64-cc",
    LibraryTarget.X8664_PC_WINDOWS_MSVC: "VC-WIN64A",
    LibraryTarget.AARCH64_PC_WINDOWS_MSVC: "VC-WIN64-ARM",
    LibraryTarget.X8664_UNKNOWN_LINUX_GNU: "linux-x86_64-clang",
    LibraryTarget.AARCH64_UNKNOWN_LINUX_GNU: "linux-aarch64",
    LibraryTarget.AARCH64_LINUX_ANDROID: "android-arm64",
}

# Configure writes Makefile on Unix and makefile on Windows
MAKEFILE_MARKERS = ("makefile", "Makefile")

DEFAULT_SOURCE_LOCATION = GitLocation.github("syrel", "openssl").branch("OpenSSL_1_1_1-stable-Windows-pkgconfig")


def compiler_identifier(target: LibraryTarget) -> str:
    """OpenSSL Configure target for a platform"""
    return OPENSSL_TARGETS[target]


class LibraryArtefact(str, Enum):
    CRYPTO = "crypto"
    SSL = "ssl"


class OpenSSLBuilder(BaseBuilder):
    """Builds libcrypto or libssl out of one OpenSSL source tree"""

    def __init__(self,
                 source_location: Optional[LibraryLocation] = None,
                 release_location: Optional[LibraryLocation] = None,
                 artefact: LibraryArtefact = LibraryArtefact.CRYPTO,
                 **kwargs):
        super().__init__(source_location or DEFAULT_SOURCE_LOCATION, release_location, **kwargs)
        self.artefact = LibraryArtefact(artefact)

    def be_ssl(self) -> "OpenSSLBuilder":
        self.artefact = LibraryArtefact.SSL
        return self

    def be_crypto(self) -> "OpenSSLBuilder":
        self.artefact = LibraryArtefact.CRYPTO
        return self

    def with_release_location(self, release_location: Optional[LibraryLocation]) -> "OpenSSLBuilder":
        self._release_location = release_location
        return self

    def name(self) -> str:
        return self.artefact.value

    def source_name(self) -> str:
        # crypto and ssl come out of the same checkout
        return "openssl"

    def compiler(self, context: LibraryCompilationContext) -> str:
        return compiler_identifier(context.target)

    def required_tools(self, context: LibraryCompilationContext) -> Sequence[str]:
        tools = ["perl"]
        if context.is_unix():
            tools.append("make")
        if context.is_windows():
            tools.append("nasm")
        return tools

    def is_configured(self, context: LibraryCompilationContext) -> bool:
        build_dir = self.build_directory(context)
        return any((build_dir / marker).exists() for marker in MAKEFILE_MARKERS)

    def configure_command(self, context: LibraryCompilationContext) -> List[str]:
        prefix = self.native_library_prefix(context)
        cmd = [
            "perl",
            str(self.source_directory(context) / "Configure"),
            f"--{context.profile()}",
            f"--prefix={prefix}",
            f"--openssldir={prefix}",
            self.compiler(context),
            "OPT_LEVEL=3",
        ]
        if self.options.is_static():
            cmd.append("no-shared")
        if context.is_android():
            cmd.append(f"-D__ANDROID_API__={context.android_target_api}")
        return cmd

    def android_environment(self, context: LibraryCompilationContext) -> Optional[EnvironmentOverlay]:
        """NDK overlay for Android targets, None everywhere else"""
        if not context.is_android():
            return None
        ndk = AndroidNdk.from_env()
        self.logger.debug(f"Using Android NDK at {ndk.root} (from {ndk.root_variable})")
        return ndk.environment_overlay()

    def configure(self, context: LibraryCompilationContext):
        """
        Run OpenSSL's Configure unless a makefile is already in place

        Raises:
            BuildDirectoryError: if the prefix cannot be created or a stale makefile removed
            ToolchainNotFoundError: if an Android NDK is needed but missing
            ConfigurationError: if Configure exits with a nonzero status
        """
        environment = self.android_environment(context)
        self.make_directory(self.native_library_prefix(context))

        build_dir = self.build_directory(context)
        if self.is_configured(context):
            self.logger.info(f"{self.name()} is already configured in {build_dir}, skipping Configure")
            return

        self.logger.info(f"Configuring {self.name()}...")
        result = self.run_command(self.configure_command(context), cwd=build_dir, environment=environment)
        if result.returncode != 0:
            self._discard_markers(build_dir)
            raise ConfigurationError(self.name(), result.returncode)

    def _discard_markers(self, build_dir: Path):
        """Forget a half-written makefile so the next run configures again"""
        for marker in MAKEFILE_MARKERS:
            path = build_dir / marker
            if path.exists():
                self.logger.warning(f"Removing {path} left behind by the failed Configure")
                try:
                    path.unlink()
                except OSError as e:
                    raise BuildDirectoryError(path, e.strerror or str(e), action="remove") from e

    def install(self, context: LibraryCompilationContext):
        """
        Build and install the software components with make or nmake

        Raises:
            ToolchainNotFoundError: if no MSVC toolchain, nmake or Android NDK is found
            CompilationError: if the build exits with a nonzero status
        """
        self.logger.info(f"Installing {self.name()}...")
        build_dir = self.build_directory(context)

        if context.is_windows():
            result = self._install_with_nmake(context, build_dir)
        else:
            environment = self.android_environment(context)
            result = self.run_command(["make", "install_sw"], cwd=build_dir, environment=environment)

        if result.returncode != 0:
            raise CompilationError(self.name(), result.returncode)

    def _install_with_nmake(self, context: LibraryCompilationContext, build_dir: Path):
        if self.dry_run:
            return self.run_command(["nmake", "install_sw"], cwd=build_dir)

        toolchain = MSVCEnvironment(
            target_arch=context.target.arch,
            host_arch=LibraryTarget.for_current_host().arch,
            logger=self.logger,
        ).discover()

        nmake = toolchain.nmake
        if not nmake.exists():
            raise ToolchainNotFoundError("nmake.exe", f"not in {toolchain.tools_dir}")

        # Only the captured toolchain environment is passed on
        return self.run_command([str(nmake), "install_sw"], cwd=build_dir, environment=toolchain.environment)


def libopenssl(binary_version: Optional[str] = None, **kwargs) -> OpenSSLBuilder:
    """
    OpenSSL descriptor, releasing prebuilt binaries under ``binary_version`` if given
    """
    release_location = None
    if binary_version is not None:
        release_location = GitLocation.github("feenkcom", "libopenssl").tag(binary_version)
    return OpenSSLBuilder(**kwargs).with_release_location(release_location)


def libssl(binary_version: Optional[str] = None, **kwargs) -> OpenSSLBuilder:
    return libopenssl(binary_version, **kwargs).be_ssl()


def libcrypto(binary_version: Optional[str] = None, **kwargs) -> OpenSSLBuilder:
    return libopenssl(binary_version, **kwargs).be_crypto()
