"""Vocabulary catalog: items, loaders and filters."""

import json
import logging
from pathlib import Path

from .config import ALL_CATEGORIES, DEFAULT_CATEGORY, DEFAULT_LANGUAGE, LEVELS

logger = logging.getLogger(__name__)

# Built-in sample catalog: {language: {category: {level: [entries]}}}
SEED_VOCABULARY = {
    'en': {
        'animals': {
            'A1': [
                {'term': 'dog', 'translation': 'perro', 'definition': 'A pet that barks.'},
                {'term': 'cat', 'translation': 'gato', 'definition': 'A pet that meows.'},
                {'term': 'bird', 'translation': 'pájaro;ave', 'definition': 'An animal with feathers that can fly.'},
                {'term': 'horse', 'translation': 'caballo', 'definition': 'A large animal people ride.'},
                {'term': 'fish', 'translation': 'pez|pescado', 'definition': 'An animal that lives in water.'},
            ],
            'A2': [
                {'term': 'rabbit', 'translation': 'conejo', 'definition': 'A small animal with long ears.'},
                {'term': 'sheep', 'translation': 'oveja', 'definition': 'A farm animal kept for its wool.'},
            ],
        },
        'home': {
            'A1': [
                {'term': 'house', 'translation': 'casa', 'definition': 'A building where people live.'},
                {'term': 'table', 'translation': 'mesa', 'definition': 'Furniture with a flat top and legs.'},
                {'term': 'chair', 'translation': 'silla', 'definition': 'A seat for one person.'},
                {'term': 'window', 'translation': 'ventana', 'definition': 'An opening in a wall with glass.'},
            ],
            'B1': [
                {'term': 'drawer', 'translation': 'cajón', 'definition': 'A box that slides in and out of furniture.'},
                {'term': 'ceiling', 'translation': 'techo', 'definition': 'The top surface of a room.'},
            ],
        },
        'transport': {
            'A1': [
                {'term': 'car', 'translation': 'carro;coche|auto', 'definition': 'A road vehicle with four wheels.'},
                {'term': 'bike', 'translation': 'bicicleta/bici', 'definition': 'A vehicle with two wheels and pedals.'},
                {'term': 'train', 'translation': 'tren', 'definition': 'Carriages pulled along a railway.'},
            ],
        },
    },
    'de': {
        'tiere': {
            'A1': [
                {'term': 'der Hund', 'translation': 'el perro', 'definition': 'Ein Haustier, das bellt.'},
                {'term': 'die Katze', 'translation': 'el gato', 'definition': 'Ein Haustier, das miaut.'},
                {'term': 'das Pferd', 'translation': 'el caballo', 'definition': 'Ein großes Tier zum Reiten.'},
            ],
        },
        'essen': {
            'A1': [
                {'term': 'das Brot', 'translation': 'el pan', 'definition': 'Gebackenes aus Mehl.'},
                {'term': 'die Milch', 'translation': 'la leche', 'definition': 'Ein weißes Getränk.'},
                {'term': 'der Apfel', 'translation': 'la manzana', 'definition': 'Eine runde Frucht.'},
            ],
        },
    },
}


class VocabItem:
    """One term with its accepted translations. Treated as immutable."""

    __slots__ = ('term', 'translation', 'definition', 'level', 'category', 'language')

    def __init__(self, term: str, translation: str, definition: str = None, level: str = None,
                 category: str = DEFAULT_CATEGORY, language: str = DEFAULT_LANGUAGE):
        self.term = term
        self.translation = translation
        self.definition = definition
        self.level = level
        self.category = (category or DEFAULT_CATEGORY).strip()
        self.language = language or DEFAULT_LANGUAGE

    def __eq__(self, other) -> bool:
        if not isinstance(other, VocabItem):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash((self.language, self.level, self.category, self.term))

    def __repr__(self) -> str:
        return f"VocabItem({self.term!r} -> {self.translation!r}, {self.language}/{self.level}/{self.category})"

    def to_dict(self) -> dict:
        return {
            'term': self.term,
            'translation': self.translation,
            'definition': self.definition,
            'level': self.level,
            'category': self.category,
            'language': self.language
        }

    @classmethod
    def from_dict(cls, data: dict, language: str = None, category: str = None,
                  level: str = None) -> 'VocabItem':
        """Build an item, filling missing fields from the catalog partition.

        Raises ValueError when term or translation is missing.
        """
        term = str(data.get('term') or '').strip()
        translation = str(data.get('translation') or '').strip()
        if not term:
            raise ValueError("entry has no term")
        if not translation:
            raise ValueError(f"entry {term!r} has no translation")
        return cls(
            term=term,
            translation=translation,
            definition=data.get('definition') or None,
            level=data.get('level') or level,
            category=data.get('category') or category or DEFAULT_CATEGORY,
            language=data.get('language') or language or DEFAULT_LANGUAGE
        )


class Catalog:
    """Immutable collection of vocabulary items for a session."""

    def __init__(self, items: list[VocabItem] = None):
        self._items = tuple(items or ())

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    @property
    def items(self) -> tuple:
        return self._items

    @classmethod
    def from_entries(cls, entries: list[dict], language: str = None, category: str = None,
                     level: str = None) -> 'Catalog':
        """Build a catalog from raw dicts, dropping malformed entries."""
        return cls(_parse_entries(entries, language, category, level))

    @classmethod
    def load_directory(cls, root) -> 'Catalog':
        """Load every <root>/<language>/categories/<category>/<level>.json file."""
        root = Path(root)
        items = []
        for path in sorted(root.glob('*/categories/*/*.json')):
            language = path.parent.parent.parent.name
            category = path.parent.name
            level = path.stem
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    entries = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Failed to read catalog file {path}: {e}")
                continue
            if isinstance(entries, dict):
                entries = entries.get('items', [])
            items.extend(_parse_entries(entries, language, category, level, source=str(path)))
        logger.info(f"Loaded {len(items)} catalog items from {root}")
        return cls(items)

    @classmethod
    def from_storage(cls, storage, language: str = None) -> 'Catalog':
        """Load items seeded into a Storage backend."""
        try:
            entries = storage.get_vocab_items(language)
        except Exception as e:
            logger.error(f"Failed to load catalog from storage: {e}")
            return cls()
        return cls.from_entries(entries)

    @classmethod
    def seed(cls) -> 'Catalog':
        """The built-in sample catalog."""
        return cls.from_entries(get_seed_data())

    def languages(self) -> list[str]:
        return sorted({item.language for item in self._items})

    def categories(self, language: str) -> list[str]:
        """Categories for a language, with the ALL sentinel first."""
        found = {item.category for item in self._items if item.language == language}
        return [ALL_CATEGORIES] + sorted(found, key=str.casefold)

    def filter(self, language: str, level: str = None, category: str = ALL_CATEGORIES) -> list[VocabItem]:
        """Items for a session's language, level and category."""
        result = []
        for item in self._items:
            if item.language != language:
                continue
            if level and item.level != level:
                continue
            if category != ALL_CATEGORIES and item.category != category:
                continue
            result.append(item)
        return result

    def level_items(self, language: str, level: str) -> list[VocabItem]:
        return self.filter(language, level, ALL_CATEGORIES)


def _parse_entries(entries, language=None, category=None, level=None, source=None) -> list[VocabItem]:
    items = []
    rejected = 0
    for entry in entries or []:
        if not isinstance(entry, dict):
            rejected += 1
            continue
        try:
            items.append(VocabItem.from_dict(entry, language, category, level))
        except ValueError as e:
            rejected += 1
            logger.debug(f"Rejected catalog entry {entry!r}: {e}")
    if rejected:
        where = f" in {source}" if source else ""
        logger.warning(f"Rejected {rejected} malformed catalog entries{where}")
    return items


def get_seed_data(language: str = None) -> list[dict]:
    """Flatten SEED_VOCABULARY into entry dicts for seeding storage.

    Returns list of {term, translation, definition, level, category, language} dicts.
    """
    items = []
    for lang, categories in SEED_VOCABULARY.items():
        if language and lang != language:
            continue
        for category, levels in categories.items():
            for level in LEVELS:
                for entry in levels.get(level, []):
                    items.append({
                        'term': entry['term'],
                        'translation': entry['translation'],
                        'definition': entry.get('definition'),
                        'level': level,
                        'category': category,
                        'language': lang
                    })
    return items
