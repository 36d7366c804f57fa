"""
Persistence for the credential and the device selection.

The library only needs a small key-value contract:
- CredentialStore: get() -> credential or None, set(credential), clear()
- SelectionStore: get() -> set of device ids, set(ids)

Memory stores are the default. YamlStore keeps both in one YAML file so a
command-line session survives between invocations.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, Optional, Protocol

import yaml


class CredentialStore(Protocol):
    def get(self) -> Optional[str]: ...
    def set(self, credential: str) -> None: ...
    def clear(self) -> None: ...


class SelectionStore(Protocol):
    def get(self) -> set[str]: ...
    def set(self, ids: Iterable[str]) -> None: ...


class MemoryCredentialStore:
    def __init__(self, credential: Optional[str] = None):
        self._credential = credential

    def get(self) -> Optional[str]:
        return self._credential

    def set(self, credential: str) -> None:
        self._credential = credential

    def clear(self) -> None:
        self._credential = None


class MemorySelectionStore:
    def __init__(self, ids: Iterable[str] = ()):
        self._ids = set(ids)

    def get(self) -> set[str]:
        return set(self._ids)

    def set(self, ids: Iterable[str]) -> None:
        self._ids = set(ids)


class YamlStore:
    """Credential and selection in a single YAML file."""

    CREDENTIAL_KEY = "credential"
    SELECTION_KEY = "selected_devices"

    def __init__(self, path: str | os.PathLike, logger: Optional[logging.Logger] = None):
        self.path = Path(path)
        self.logger = logger or logging.getLogger(__name__)

    def _load(self) -> dict:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            return {}
        if not isinstance(data, dict):
            self.logger.warning(f"Ignoring malformed state file {self.path}")
            return {}
        return data

    def _save(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        # The credential is a secret, the file is private from creation
        tmp.unlink(missing_ok=True)
        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False)
        os.replace(tmp, self.path)

    # CredentialStore

    def get_credential(self) -> Optional[str]:
        value = self._load().get(self.CREDENTIAL_KEY)
        return str(value) if value else None

    def set_credential(self, credential: str) -> None:
        data = self._load()
        data[self.CREDENTIAL_KEY] = credential
        self._save(data)

    def clear_credential(self) -> None:
        data = self._load()
        if data.pop(self.CREDENTIAL_KEY, None) is not None:
            self._save(data)

    # SelectionStore

    def get_selection(self) -> set[str]:
        value = self._load().get(self.SELECTION_KEY) or []
        return {str(v) for v in value}

    def set_selection(self, ids: Iterable[str]) -> None:
        data = self._load()
        data[self.SELECTION_KEY] = sorted(set(ids))
        self._save(data)

    def credentials(self) -> "YamlCredentialView":
        return YamlCredentialView(self)

    def selection(self) -> "YamlSelectionView":
        return YamlSelectionView(self)


class YamlCredentialView:
    def __init__(self, store: YamlStore):
        self.store = store

    def get(self) -> Optional[str]:
        return self.store.get_credential()

    def set(self, credential: str) -> None:
        self.store.set_credential(credential)

    def clear(self) -> None:
        self.store.clear_credential()


class YamlSelectionView:
    def __init__(self, store: YamlStore):
        self.store = store

    def get(self) -> set[str]:
        return self.store.get_selection()

    def set(self, ids: Iterable[str]) -> None:
        self.store.set_selection(ids)
