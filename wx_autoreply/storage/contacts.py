"""Correspondent whitelist persisted to workspace/contacts.json."""

from __future__ import annotations

import threading
from pathlib import Path

from wx_autoreply.storage.history import ConversationStore
from wx_autoreply.storage.models import Correspondent
from wx_autoreply.utils.helpers import ensure_dir, read_json, write_json


class ContactStore:
    """CRUD over correspondents plus the sender-name fuzzy match used for whitelisting."""

    def __init__(self, workspace: Path, history: ConversationStore | None = None):
        self.path = ensure_dir(workspace) / "contacts.json"
        self.history = history
        self._lock = threading.Lock()

    def _read(self) -> list[Correspondent]:
        raw = read_json(self.path, [])
        if not isinstance(raw, list):
            return []
        contacts: list[Correspondent] = []
        for item in raw:
            if isinstance(item, dict):
                try:
                    contacts.append(Correspondent.model_validate(item))
                except ValueError:
                    continue
        return contacts

    def _write(self, contacts: list[Correspondent]) -> None:
        write_json(self.path, [c.model_dump() for c in contacts])

    def contacts(self) -> list[Correspondent]:
        with self._lock:
            return self._read()

    def enabled(self) -> list[Correspondent]:
        return [c for c in self.contacts() if c.enabled]

    def get(self, contact_id: str) -> Correspondent | None:
        return next((c for c in self.contacts() if c.id == contact_id), None)

    def add(self, contact: Correspondent) -> Correspondent:
        with self._lock:
            contacts = self._read()
            if any(c.id == contact.id for c in contacts):
                raise ValueError(f"Contact id already exists: {contact.id}")
            contacts.append(contact)
            self._write(contacts)
        return contact

    def update(self, contact: Correspondent) -> bool:
        with self._lock:
            contacts = self._read()
            for index, existing in enumerate(contacts):
                if existing.id == contact.id:
                    contacts[index] = contact
                    self._write(contacts)
                    return True
        return False

    def remove(self, contact_id: str) -> bool:
        """Delete a correspondent together with its conversation window."""
        with self._lock:
            contacts = self._read()
            kept = [c for c in contacts if c.id != contact_id]
            removed = len(kept) != len(contacts)
            if removed:
                self._write(kept)
        if removed and self.history is not None:
            self.history.clear(contact_id)
        return removed

    def toggle(self, contact_id: str) -> bool:
        """Flip the enabled flag; returns the new state (False when not found)."""
        with self._lock:
            contacts = self._read()
            for index, existing in enumerate(contacts):
                if existing.id == contact_id:
                    contacts[index] = existing.model_copy(update={"enabled": not existing.enabled})
                    self._write(contacts)
                    return contacts[index].enabled
        return False

    def find_by_name(self, sender: str) -> Correspondent | None:
        """First enabled correspondent whose name contains, or is contained in, the sender."""
        sender = (sender or "").strip()
        if not sender:
            return None
        for contact in self.enabled():
            name = contact.name.strip()
            if name and (name in sender or sender in name):
                return contact
        return None
