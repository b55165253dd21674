from pathlib import Path

import pytest
from pydantic import TypeAdapter, ValidationError

from library_builder.models import (
    CompiledLibraryName,
    GitLocation,
    LibraryCompilationContext,
    LibraryLocation,
    LibraryOptions,
    LibraryType,
    PathLocation,
    library_suffix,
)
from library_builder.platform import LibraryTarget


def _make_context(tmp_path: Path, target=LibraryTarget.X8664_UNKNOWN_LINUX_GNU, debug=False):
    return LibraryCompilationContext.new(tmp_path / "src", tmp_path / "target", target, debug)


def test_github_location_pins_one_reference():
    location = GitLocation.github("syrel", "openssl").branch("stable").tag("v1")

    assert location.repository == "https://github.com/syrel/openssl.git"
    assert location.tag_name == "v1"
    assert location.branch_name is None
    assert location.version() == "v1"
    assert location.name() == "openssl"


def test_location_discriminates_on_kind(tmp_path):
    adapter = TypeAdapter(LibraryLocation)

    git = adapter.validate_python({"kind": "git", "repository": "https://example.com/x.git"})
    local = adapter.validate_python({"kind": "path", "path": str(tmp_path)})

    assert isinstance(git, GitLocation)
    assert isinstance(local, PathLocation)
    assert local.name() == tmp_path.name


def test_options_default_to_shared():
    options = LibraryOptions()

    assert options.is_shared()
    assert not options.is_static()
    assert LibraryOptions(library_type=LibraryType.STATIC).is_static()


def test_context_profile_and_predicates(tmp_path):
    release = _make_context(tmp_path)
    debug = _make_context(tmp_path, target=LibraryTarget.AARCH64_LINUX_ANDROID, debug=True)

    assert release.profile() == "release"
    assert not release.is_debug()
    assert release.is_unix() and not release.is_android()
    assert debug.profile() == "debug"
    assert debug.is_android() and debug.is_unix()
    assert debug.android_target_api == 24


def test_context_paths_are_absolute(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    context = LibraryCompilationContext.new("target/src", "target", LibraryTarget.X8664_APPLE_DARWIN, False)

    assert context.sources_root == tmp_path / "target" / "src"
    assert context.build_root.is_absolute()


def test_context_is_frozen(tmp_path):
    context = _make_context(tmp_path)

    with pytest.raises(ValidationError):
        context.debug = True


def test_context_rejects_invalid_api_level(tmp_path):
    with pytest.raises(ValidationError):
        LibraryCompilationContext(
            sources_root=tmp_path, build_root=tmp_path,
            target=LibraryTarget.AARCH64_LINUX_ANDROID, android_target_api=0,
        )


def test_library_suffix():
    assert library_suffix(LibraryTarget.X8664_UNKNOWN_LINUX_GNU) == ".so"
    assert library_suffix(LibraryTarget.AARCH64_APPLE_DARWIN) == ".dylib"
    assert library_suffix(LibraryTarget.X8664_PC_WINDOWS_MSVC) == ".dll"
    assert library_suffix(LibraryTarget.X8664_PC_WINDOWS_MSVC, static=True) == ".lib"
    assert library_suffix(LibraryTarget.AARCH64_LINUX_ANDROID, static=True) == ".a"


def test_compiled_library_name_matching():
    name = CompiledLibraryName.matching("crypto")
    linux = LibraryTarget.X8664_UNKNOWN_LINUX_GNU

    assert name.matches("libcrypto.so", linux)
    assert name.matches("libcrypto.so.1.1", linux)
    assert not name.matches("libcrypto.a", linux)
    assert name.matches("libcrypto.a", linux, static=True)
    assert not name.matches("libssl.so", linux)
    assert name.matches("libcrypto-1_1-x64.dll", LibraryTarget.X8664_PC_WINDOWS_MSVC)
