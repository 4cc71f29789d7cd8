"""Persistence for auth records"""

from pathlib import Path
from typing import Type

from ..auth.models import AdminRecord, CredentialRecord, UserRecord
from ..auth.namespaces import IdentifierKind, Namespace
from .credential_store import CredentialStore, InMemoryCredentialStore, JsonCredentialStore


def record_type_for(namespace: Namespace) -> Type[CredentialRecord]:
    return UserRecord if namespace.identifier_kind is IdentifierKind.PHONE else AdminRecord


def open_store(namespace: Namespace, data_dir: Path) -> JsonCredentialStore:
    """JSON store for the namespace's own collection under data_dir."""
    data_dir = Path(data_dir)
    return JsonCredentialStore(
        data_dir / f"{namespace.collection}.json",
        record_type_for(namespace),
        locks_dir=data_dir / "locks",
    )


__all__ = [
    "CredentialStore",
    "InMemoryCredentialStore",
    "JsonCredentialStore",
    "open_store",
    "record_type_for",
]
