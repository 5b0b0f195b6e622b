"""Write leaf packages to an environment.yml-style file."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from conda_leaves.core.errors import MetadataIOError
from conda_leaves.core.tree import Installer, ResolvedPackage

DEFAULT_EXPORT_FILENAME = "environment.yml"


@dataclass
class EnvironmentYml:
    """Name plus pinned dependency specs, split by installer."""

    name: str
    dependencies: list[str] = field(default_factory=list)
    pip: list[str] | None = None

    @classmethod
    def from_packages(cls, name: str, packages: Iterable[ResolvedPackage]) -> EnvironmentYml:
        """Conda packages go to ``dependencies``, pip packages to the nested ``pip`` list."""
        conda_specs: list[str] = []
        pip_specs: list[str] = []
        for package in packages:
            if package.installer is Installer.PIP:
                pip_specs.append(package.to_spec())
            else:
                conda_specs.append(package.to_spec())
        return cls(name=name, dependencies=conda_specs, pip=pip_specs or None)

    def to_text(self) -> str:
        lines = [f"name: {self.name}", "dependencies:"]
        lines.extend(f"  - {spec}" for spec in self.dependencies)
        if self.pip:
            lines.append("  - pip:")
            lines.extend(f"    - {spec}" for spec in self.pip)
        return "\n".join(lines) + "\n"

    def write(self, path: Path, *, overwrite: bool = False) -> Path:
        """
        Write the file and return its path.

        Raises:
            FileExistsError: ``path`` exists and ``overwrite`` is False.
            MetadataIOError: the file cannot be written.
        """
        path = Path(path)
        if path.exists() and not overwrite:
            raise FileExistsError(f"{path} already exists")
        try:
            path.write_text(self.to_text(), encoding="utf-8")
        except OSError as e:
            raise MetadataIOError(path, e.strerror or str(e), action="write") from e
        return path
