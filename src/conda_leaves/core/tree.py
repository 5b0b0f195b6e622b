"""Resolved dependency trees and their text rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# Version value meaning "unconstrained"; such packages are labelled by name only.
ANY_VERSION = "any"

_BRANCH = "├── "
_PIPE = "│   "
_LAST_BRANCH = "└── "
_SPACE = "    "


class Installer(Enum):
    """Tool that installed a package. Metadata does not record it, so Conda is assumed."""

    CONDA = "conda"
    PIP = "pip"


@dataclass
class ResolvedPackage:
    """A package with its requirements resolved recursively to other packages."""

    name: str
    version: str
    requires: list[ResolvedPackage] = field(default_factory=list)
    installer: Installer = Installer.CONDA

    @property
    def label(self) -> str:
        """Display label: ``name (vX.Y)``, or just ``name`` for version ``any``."""
        if self.version == ANY_VERSION:
            return self.name
        return f"{self.name} (v{self.version})"

    def __str__(self) -> str:
        return self.label

    def to_spec(self) -> str:
        """Pinned spec for environment files: ``name=ver`` (conda) or ``name==ver`` (pip)."""
        if self.installer is Installer.PIP:
            return f"{self.name}=={self.version}"
        return f"{self.name}={self.version}"

    def to_dict(self) -> dict:
        """Serialize node to a JSON-friendly dict (for API/frontend)."""
        root = self._fields()
        stack = [(self, root)]
        while stack:
            package, data = stack.pop()
            for child in package.requires:
                child_data = child._fields()
                data["requires"].append(child_data)
                stack.append((child, child_data))
        return root

    def _fields(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "installer": self.installer.value,
            "requires": [],
        }


def package_to_lines(package: ResolvedPackage) -> list[str]:
    """
    Render a package and its requirements as tree lines.

    The first line is the package label. Each child's block follows in
    declaration order; a child's first line gets a branch marker and its
    remaining lines get the matching continuation prefix.
    """
    lines: list[str] = []
    # (node, prefix of its own line, prefix inherited by its children)
    stack = [(package, "", "")]
    while stack:
        node, own_prefix, child_prefix = stack.pop()
        lines.append(own_prefix + node.label)
        last = len(node.requires) - 1
        for i in range(last, -1, -1):
            first, rest = (_LAST_BRANCH, _SPACE) if i == last else (_BRANCH, _PIPE)
            stack.append((node.requires[i], child_prefix + first, child_prefix + rest))
    return lines


def render_tree(package: ResolvedPackage) -> str:
    """Full tree text for a package (lines joined with newlines)."""
    return "\n".join(package_to_lines(package))
