"""Contains the models shared by library descriptors and the build driver"""

from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .platform import LibraryTarget

DEFAULT_ANDROID_TARGET_API = 24


class GitLocation(BaseModel):
    """A library source kept in a git repository"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["git"] = "git"
    repository: str
    """Clone URL of the repository"""
    tag_name: Optional[str] = None
    branch_name: Optional[str] = None
    commit_hash: Optional[str] = None

    @classmethod
    def github(cls, owner: str, repo: str) -> "GitLocation":
        return cls(repository=f"https://github.com/{owner}/{repo}.git")

    def tag(self, tag: str) -> "GitLocation":
        return self.model_copy(update={"tag_name": tag, "branch_name": None, "commit_hash": None})

    def branch(self, branch: str) -> "GitLocation":
        return self.model_copy(update={"tag_name": None, "branch_name": branch, "commit_hash": None})

    def version(self) -> Optional[str]:
        """Whichever of tag, branch or commit is pinned"""
        return self.tag_name or self.branch_name or self.commit_hash

    def name(self) -> str:
        """Repository name without the .git suffix"""
        last = self.repository.rstrip("/").rsplit("/", 1)[-1]
        return last[:-4] if last.endswith(".git") else last


class PathLocation(BaseModel):
    """A library source that already exists on disk"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["path"] = "path"
    path: Path

    def name(self) -> str:
        return self.path.name


LibraryLocation = Annotated[Union[GitLocation, PathLocation], Field(discriminator="kind")]


class LibraryType(str, Enum):
    SHARED = "shared"
    STATIC = "static"


class LibraryOptions(BaseModel):
    """Build options owned by a single library descriptor"""

    library_type: LibraryType = LibraryType.SHARED

    def is_static(self) -> bool:
        return self.library_type is LibraryType.STATIC

    def is_shared(self) -> bool:
        return self.library_type is LibraryType.SHARED


class CompiledLibraryName(BaseModel):
    """How to recognise a compiled artifact among the files of a library directory"""
    model_config = ConfigDict(frozen=True)

    stem: str

    @classmethod
    def matching(cls, stem: str) -> "CompiledLibraryName":
        return cls(stem=stem)

    def matches(self, file_name: str, target: LibraryTarget, static: bool = False) -> bool:
        if self.stem not in file_name:
            return False
        suffix = library_suffix(target, static)
        # Versioned shared objects look like libcrypto.so.1.1
        return file_name.endswith(suffix) or f"{suffix}." in file_name


def library_suffix(target: LibraryTarget, static: bool = False) -> str:
    """File suffix of a compiled library for the given target"""
    if target.is_windows():
        return ".lib" if static else ".dll"
    if static:
        return ".a"
    if target.is_mac():
        return ".dylib"
    return ".so"


class LibraryCompilationContext(BaseModel):
    """Immutable description of one build invocation"""
    model_config = ConfigDict(frozen=True)

    sources_root: Path
    """Directory under which library sources are already materialized"""
    build_root: Path
    """Private directory under which every artifact gets its build directory"""
    target: LibraryTarget
    debug: bool = False
    android_target_api: int = Field(default=DEFAULT_ANDROID_TARGET_API, ge=1)

    @field_validator("sources_root", "build_root")
    @classmethod
    def _absolute(cls, value: Path) -> Path:
        return Path(value).expanduser().absolute()

    @classmethod
    def new(cls,
            sources_root: Union[str, Path],
            build_root: Union[str, Path],
            target: LibraryTarget,
            debug: bool,
            android_target_api: int = DEFAULT_ANDROID_TARGET_API) -> "LibraryCompilationContext":
        return cls(
            sources_root=sources_root,
            build_root=build_root,
            target=target,
            debug=debug,
            android_target_api=android_target_api,
        )

    def profile(self) -> str:
        return "debug" if self.debug else "release"

    def is_debug(self) -> bool:
        return self.debug

    def is_windows(self) -> bool:
        return self.target.is_windows()

    def is_unix(self) -> bool:
        return self.target.is_unix()

    def is_android(self) -> bool:
        return self.target.is_android()


__all__ = [
    "DEFAULT_ANDROID_TARGET_API",
    "GitLocation",
    "PathLocation",
    "LibraryLocation",
    "LibraryType",
    "LibraryOptions",
    "CompiledLibraryName",
    "LibraryCompilationContext",
    "library_suffix",
]
