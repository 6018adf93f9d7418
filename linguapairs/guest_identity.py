"""
LinguaPairs Backend - Guest identity
Anonymous id + display name for challenge demo participants, kept in a
client-side key/value store that is injected by the caller.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol
import json
import logging
import random
import uuid

logger = logging.getLogger(__name__)

STORAGE_KEY_GUEST_ID = "linguapairs.guest.id"
STORAGE_KEY_GUEST_NAME = "linguapairs.guest.name"
PLACEHOLDER_NAME = "Anonim"

ADJECTIVES = [
    "Szybki", "Bystry", "Finezyjny", "Sprytny", "Wesoły", "Dzielny",
    "Mądry", "Zwinny", "Czujny", "Śmiały", "Hardy",
]

NOUNS = [
    "Bóbr", "Lis", "Wilk", "Orzeł", "Sokół", "Ryś", "Dzik", "Żubr", "Łoś", "Niedźwiedź",
]


@dataclass(frozen=True)
class GuestIdentity:
    guest_id: str
    guest_name: str


class KeyValueStorage(Protocol):
    """Persistent string storage capability"""

    available: bool

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class InMemoryStorage:
    available = True

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class NullStorage:
    """Storage for contexts without persistence; nothing is kept"""

    available = False

    def get(self, key: str) -> Optional[str]:
        return None

    def set(self, key: str, value: str) -> None:
        return None


class JsonFileStorage:
    """Key/value storage persisted as a flat JSON object on disk"""

    available = True

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning(f"Ignoring unreadable guest storage file {self.path}")
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")


def generate_random_name(rng: Optional[random.Random] = None) -> str:
    rng = rng or random.Random()
    adjective = rng.choice(ADJECTIVES)
    noun = rng.choice(NOUNS)
    number = rng.randrange(100)
    return f"{adjective} {noun} #{number}"


class GuestIdentityService:
    """Reads, creates and renames the guest identity held in ``storage``"""

    def __init__(
        self,
        storage: KeyValueStorage,
        rng: Optional[random.Random] = None,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.storage = storage
        self.rng = rng or random.Random()
        self.id_factory = id_factory

    def get_identity(self) -> GuestIdentity:
        if not self.storage.available:
            return GuestIdentity(guest_id="", guest_name=PLACEHOLDER_NAME)

        guest_id = self.storage.get(STORAGE_KEY_GUEST_ID)
        if not guest_id:
            guest_id = self.id_factory()
            self.storage.set(STORAGE_KEY_GUEST_ID, guest_id)

        guest_name = self.storage.get(STORAGE_KEY_GUEST_NAME)
        if not guest_name:
            guest_name = generate_random_name(self.rng)
            self.storage.set(STORAGE_KEY_GUEST_NAME, guest_name)

        return GuestIdentity(guest_id=guest_id, guest_name=guest_name)

    def update_name(self, name: str) -> None:
        if not self.storage.available:
            return
        self.storage.set(STORAGE_KEY_GUEST_NAME, name)

    def regenerate_name(self) -> str:
        if not self.storage.available:
            return PLACEHOLDER_NAME
        name = generate_random_name(self.rng)
        self.storage.set(STORAGE_KEY_GUEST_NAME, name)
        return name

    def ensure_identity(self) -> None:
        self.get_identity()
