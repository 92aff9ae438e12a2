"""Data models for hosts, artifacts and per-host outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Literal

from hostbackup.core.errors import UnknownMethod

COMMENT_MARKER = "#"

ArtifactProvenance = Literal["transfer", "capture"]


class BackupMethod(str, Enum):
    """Backup procedures known to the runner."""

    BINARY_SNAPSHOT = "binary-snapshot"
    EXPORT_AND_READ = "export-and-read"
    CISCO_CAPTURE = "cisco-capture"
    HP_CAPTURE = "hp-capture"

    @classmethod
    def parse(cls, tag: str) -> BackupMethod:
        """Map a host record's method tag to a known method or raise ``UnknownMethod``."""

        try:
            return cls(tag.strip().lower())
        except ValueError:
            raise UnknownMethod(tag) from None


@dataclass(frozen=True, slots=True)
class HostDescriptor:
    """One row of the host list."""

    name: str
    address: str
    username: str
    password: str = field(repr=False)
    method: str

    @property
    def is_comment(self) -> bool:
        return self.name.startswith(COMMENT_MARKER)


@dataclass(frozen=True, slots=True)
class BackupArtifact:
    """Backup payload produced by a vendor strategy."""

    filename: str
    content: bytes
    provenance: ArtifactProvenance
    degraded: bool = False
    warnings: tuple[str, ...] = ()

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(slots=True)
class Outcome:
    """Result of processing a single non-comment host."""

    host: str
    method: str
    path: Path | None = None
    error: Exception | None = None
    warnings: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> str | None:
        return type(self.error).__name__ if self.error is not None else None

    def status_line(self) -> str:
        if self.ok:
            return f"{self.host} Backed up"
        return f"Backup Failed: {self.host} :: {self.error}"


@dataclass(slots=True)
class BatchResult:
    """Outcomes of one run, in input order."""

    outcomes: list[Outcome] = field(default_factory=list)

    def add(self, outcome: Outcome) -> None:
        self.outcomes.append(outcome)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.ok)
