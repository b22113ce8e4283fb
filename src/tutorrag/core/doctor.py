"""Dependency verification for TutorRAG.

Checks that the external binaries used during ingestion are on the PATH.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tutorrag.core.config import TutorRAGConfig


@dataclass
class DependencyCheck:
    """Result of checking a single dependency.

    Attributes:
        name: Executable name (e.g., "ffmpeg", "whisper")
        available: Whether the executable was found in PATH
        path: Full path to the executable if found, None otherwise
        required: Whether ingestion needs it with the current configuration
    """

    name: str
    available: bool
    path: str | None
    required: bool = True


@dataclass
class DoctorResult:
    """Result of running dependency checks."""

    checks: list[DependencyCheck] = field(default_factory=list)

    @property
    def all_ok(self) -> bool:
        """Return True if all required dependencies are available."""
        return all(check.available or not check.required for check in self.checks)

    @property
    def missing(self) -> list[str]:
        return [c.name for c in self.checks if c.required and not c.available]


def check_dependencies(config: TutorRAGConfig | None = None) -> DoctorResult:
    """Check if required system dependencies are available.

    ffmpeg and ffprobe are always required (audio extraction and splitting).
    The ``whisper`` CLI is required only when ``stt_provider`` is
    ``whisper_cli``, and reported as optional otherwise.
    """
    uses_whisper_cli = config is not None and config.stt_provider == "whisper_cli"
    binaries = [
        ("ffmpeg", True),
        ("ffprobe", True),
        ("whisper", uses_whisper_cli),
    ]

    checks: list[DependencyCheck] = []
    for name, required in binaries:
        path = shutil.which(name)
        checks.append(
            DependencyCheck(
                name=name,
                available=path is not None,
                path=path,
                required=required,
            )
        )

    return DoctorResult(checks=checks)
