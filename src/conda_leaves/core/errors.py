"""Exceptions raised by the conda-leaves core library."""

from __future__ import annotations

from pathlib import Path


class CondaLeavesError(Exception):
    """Base class for every error the library raises on purpose."""


class MetadataIOError(CondaLeavesError):
    """A metadata file or directory could not be read, listed or written."""

    def __init__(self, path: Path | str, reason: str = "", *, action: str = "read") -> None:
        self.path = Path(path)
        self.reason = reason
        message = f"Cannot {action} {self.path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class MetadataParseError(CondaLeavesError):
    """A descriptor was readable but its content is malformed."""

    def __init__(self, path: Path | str | None, reason: str) -> None:
        self.path = Path(path) if path is not None else None
        self.reason = reason
        where = str(self.path) if self.path is not None else "<descriptor>"
        super().__init__(f"Malformed descriptor {where}: {reason}")


class UnknownPackageError(CondaLeavesError):
    """A queried or required package name is not in the catalog."""

    def __init__(self, name: str, required_by: str | None = None) -> None:
        self.name = name
        self.required_by = required_by
        if required_by:
            message = f"Package not found: {name} (required by {required_by})"
        else:
            message = f"Package not found: {name}"
        super().__init__(message)


class DependencyResolutionError(CondaLeavesError):
    """Resolving a package's requirements could not terminate normally."""


class DependencyCycleError(DependencyResolutionError):
    """The requirement graph loops back on a package already on the current path."""

    def __init__(self, chain: list[str]) -> None:
        self.chain = list(chain)
        super().__init__("Dependency cycle: " + " -> ".join(self.chain))


class DependencyDepthError(DependencyResolutionError):
    """Resolution went deeper than the allowed number of levels."""

    def __init__(self, name: str, max_depth: int) -> None:
        self.name = name
        self.max_depth = max_depth
        super().__init__(f"Dependency tree of {name} is deeper than {max_depth} levels")


class EnvironmentNotFoundError(CondaLeavesError):
    """No active conda environment (or the given prefix is not one)."""
