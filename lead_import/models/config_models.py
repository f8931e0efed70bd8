from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Config dataclasses for the bulk lead importer.

These are the typed domain models produced by lead_import/config/loader.py.
Everything the pipeline needs is passed in
explicitly through ImportConfig; nothing is read from ambient session state.
"""

__all__ = [
    "AssignmentMode",
    "TeamMember",
    "AssignmentConfig",
    "ActorConfig",
    "TargetConfig",
    "DatabaseConfig",
    "ImportConfig",
    "DEFAULT_BATCH_SIZE",
    "MAX_BATCH_SIZE",
]

DEFAULT_BATCH_SIZE = 450
MAX_BATCH_SIZE = 450  # records per atomic commit group


class AssignmentMode(Enum):
    """Ownership assignment for newly created records.

    - UNASSIGNED: no owner fields are written
    - SPECIFIC_USER: every created record goes to one fixed member
    - ROUND_ROBIN: created records cycle through the member list in order
    """
    UNASSIGNED = "unassigned"
    SPECIFIC_USER = "specific_user"
    ROUND_ROBIN = "round_robin"


@dataclass(frozen=True)
class TeamMember:
    id: str
    name: str


@dataclass(frozen=True)
class AssignmentConfig:
    mode: AssignmentMode = AssignmentMode.UNASSIGNED
    members: tuple[TeamMember, ...] = ()  # 選択済みメンバー (順序 = round robin 順)


@dataclass(frozen=True)
class ActorConfig:
    """Who the audit entries are attributed to."""
    id: str = "system"
    name: str = "System"


@dataclass(frozen=True)
class TargetConfig:
    """Target collection for reconciliation.

    tenant_id scopes the collection under a company (companies/{id}/{collection});
    None targets a global collection such as `drivers`.
    """
    collection: str = "leads"
    tenant_id: str | None = None
    profile: str = "lead"  # lead | driver (payload field mapping)


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for one import run."""
    target: TargetConfig = field(default_factory=TargetConfig)
    batch_size: int = DEFAULT_BATCH_SIZE
    assignment: AssignmentConfig = field(default_factory=AssignmentConfig)
    actor: ActorConfig = field(default_factory=ActorConfig)
    source_label: str | None = None  # None -> derived from profile + import method
    fetch_timeout: float = 30.0
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
