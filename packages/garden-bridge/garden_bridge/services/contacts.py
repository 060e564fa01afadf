"""Service layer — contacts store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from garden_bridge.services.base import ItemNotFoundError


@dataclass
class Contact:
    id: str
    given_name: str = ""
    family_name: str = ""
    organization: str | None = None
    emails: list[str] = field(default_factory=list)
    phones: list[str] = field(default_factory=list)
    birthday: date | None = None
    note: str | None = None

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.given_name, self.family_name) if p)

    def matches(self, query: str) -> bool:
        needle = query.casefold()
        haystack = [self.full_name, self.organization or "", *self.emails]
        if any(needle in h.casefold() for h in haystack):
            return True
        digits = "".join(ch for ch in query if ch.isdigit())
        return bool(digits) and any(
            digits in "".join(ch for ch in p if ch.isdigit()) for p in self.phones
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.full_name,
            "givenName": self.given_name,
            "familyName": self.family_name,
            "organization": self.organization,
            "emails": list(self.emails),
            "phones": list(self.phones),
            "birthday": self.birthday.isoformat() if self.birthday else None,
            "note": self.note,
        }


class ContactsService(ABC):
    @abstractmethod
    async def search(self, query: str, limit: int) -> list[Contact]: ...

    @abstractmethod
    async def get(self, contact_id: str) -> Contact: ...

    @abstractmethod
    async def all_with_birthdays(self) -> list[Contact]: ...


class MemoryContactsService(ContactsService):
    def __init__(self, contacts: list[Contact] | None = None) -> None:
        self._contacts = {c.id: c for c in contacts or []}

    def add(self, contact: Contact) -> None:
        self._contacts[contact.id] = contact

    async def search(self, query: str, limit: int) -> list[Contact]:
        return [c for c in self._contacts.values() if c.matches(query)][:limit]

    async def get(self, contact_id: str) -> Contact:
        try:
            return self._contacts[contact_id]
        except KeyError:
            raise ItemNotFoundError("Contact", contact_id) from None

    async def all_with_birthdays(self) -> list[Contact]:
        return [c for c in self._contacts.values() if c.birthday is not None]
