"""Leitner mastery records and hard-word counters."""

import logging
import time

from .config import MIN_BOX, MAX_BOX, WEIGHT_CEILING, MIN_WEIGHT

logger = logging.getLogger(__name__)


class MasteryRecord:
    """Leitner state of a single term."""

    def __init__(self, box: int = MIN_BOX, seen: int = 0, last_updated: float = None):
        self.box = box
        self.seen = seen
        self.last_updated = last_updated

    def to_dict(self) -> dict:
        return {
            'box': self.box,
            'seen': self.seen,
            'last_updated': self.last_updated
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'MasteryRecord':
        box = int(data.get('box', MIN_BOX) or 0)
        return cls(
            box=min(MAX_BOX, max(MIN_BOX, box)),
            seen=max(0, int(data.get('seen', 0) or 0)),
            last_updated=data.get('last_updated')
        )


class MasteryStore:
    """Per-term Leitner boxes, shared across levels, categories and languages.

    Records are keyed by term only, so a term that appears in two categories
    shares one record. Box clamping and the weight floor live here and
    nowhere else.
    """

    def __init__(self, records: dict = None, clock=time.time):
        self._records = records or {}
        self._clock = clock

    def __contains__(self, term: str) -> bool:
        return term in self._records

    def __len__(self) -> int:
        return len(self._records)

    def get(self, term: str) -> MasteryRecord:
        """Record for a term; an unseen term reads as box 0, seen 0."""
        record = self._records.get(term)
        if record is None:
            return MasteryRecord()
        return record

    def box(self, term: str) -> int:
        return self.get(term).box

    def grade(self, term: str, was_correct: bool) -> MasteryRecord:
        """Move the term one box up or down and count the attempt."""
        record = self._records.get(term)
        if record is None:
            record = MasteryRecord()
            self._records[term] = record
        if was_correct:
            record.box = min(MAX_BOX, record.box + 1)
        else:
            record.box = max(MIN_BOX, record.box - 1)
        record.seen += 1
        record.last_updated = self._clock()
        return record

    def weight(self, term: str) -> int:
        """Selection weight: box 0 => 5 ... box 4 => 1."""
        return max(MIN_WEIGHT, WEIGHT_CEILING - self.box(term))

    def is_mastered(self, term: str) -> bool:
        """A term counts as learned once it left box 0."""
        return self.box(term) > MIN_BOX

    def to_dict(self) -> dict:
        return {term: record.to_dict() for term, record in self._records.items()}

    @classmethod
    def from_dict(cls, data: dict, clock=time.time) -> 'MasteryStore':
        records = {}
        for term, raw in (data or {}).items():
            if not term or not isinstance(raw, dict):
                continue
            try:
                records[term] = MasteryRecord.from_dict(raw)
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed mastery record for {term!r}: {e}")
        return cls(records, clock=clock)


class HardWordCounter:
    """Count of terminal failures per term. Counts only ever grow."""

    def __init__(self, counts: dict = None):
        self._counts = counts or {}

    def __contains__(self, term: str) -> bool:
        return self.count(term) > 0

    def __len__(self) -> int:
        return len(self.terms())

    def count(self, term: str) -> int:
        return self._counts.get(term, 0)

    def increment(self, term: str) -> int:
        self._counts[term] = self._counts.get(term, 0) + 1
        return self._counts[term]

    def terms(self) -> set[str]:
        """Terms eligible for the hard-words pool."""
        return {term for term, count in self._counts.items() if count > 0}

    def to_dict(self) -> dict:
        return dict(self._counts)

    @classmethod
    def from_dict(cls, data: dict) -> 'HardWordCounter':
        counts = {}
        for term, count in (data or {}).items():
            if isinstance(count, bool) or not isinstance(count, (int, float)):
                continue
            if term and count > 0:
                counts[term] = int(count)
        return cls(counts)
