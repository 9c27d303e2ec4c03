"""Optimistic concurrency checks on the administrator version counter."""
from __future__ import annotations

from dataclasses import dataclass

from ...domain.administrator import AdministratorRecord
from ...errors import ValidationError


@dataclass(frozen=True)
class VersionOk:
    pass


@dataclass(frozen=True)
class VersionConflict:
    current: AdministratorRecord


VersionCheck = VersionOk | VersionConflict


def validate_client_version(client_version: object) -> int:
    """Shape check only; a missing version is a request error, not a conflict."""
    if client_version is None:
        raise ValidationError(
            "Version information (client_version) is required for safe editing",
            code="MISSING_VERSION",
        )
    if isinstance(client_version, bool) or not isinstance(client_version, int):
        raise ValidationError("client_version must be an integer", code="INVALID_VERSION")
    if client_version < 0:
        raise ValidationError("client_version must be non-negative", code="INVALID_VERSION")
    return client_version


def check_version(record: AdministratorRecord, client_version: int) -> VersionCheck:
    """Compare the caller's observed version with the stored one.

    An ``Ok`` authorizes exactly one write, which must itself be conditional
    on the same version (see ``AdministratorStore.compare_and_swap``).
    """
    if record.version != client_version:
        return VersionConflict(current=record)
    return VersionOk()
