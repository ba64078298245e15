"""
Krishna108 - Scripture Index

Static structural metadata for the two scriptures of the canon: for each
scripture an ordered list of chapters and the verse count of each chapter.

The index defines the total order over every valid reference within a
scripture and is never mutated at runtime.

Srimad Bhagavatam is modelled through Canto 1 only. Extending it is a
content change to SRIMAD_BHAGAVATAM_CHAPTERS; the sequencer and selector do
not depend on how many chapters the index holds.
"""
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Sequence

from core.errors import ConfigError, OutOfRangeError
from data.schemas import Scripture, VerseReference


# Bhagavad Gita As It Is: 18 chapters, 700 verses.
# Chapter 13 is counted with 35 verses (some editions have 34).
BHAGAVAD_GITA_CHAPTERS: Sequence[int] = (
    46, 72, 43, 42, 29, 47, 30, 28, 34,
    42, 55, 20, 35, 27, 20, 24, 28, 78,
)

# Srimad Bhagavatam Canto 1: 19 chapters, 845 verses.
SRIMAD_BHAGAVATAM_CHAPTERS: Sequence[int] = (
    23, 34, 44, 33, 40, 38, 58, 52, 49, 70,
    39, 36, 60, 43, 51, 36, 46, 50, 43,
)


class ScriptureStructure:
    """
    Chapter number (1..N) to verse count for a single scripture.

    Chapters must be contiguous from 1 and every verse count must be a
    positive integer.
    """

    def __init__(self, source: Scripture, verse_counts: Mapping[int, int]):
        self.source = source
        self._verses = MappingProxyType(dict(verse_counts))
        self._validate()

    @classmethod
    def from_counts(cls, source: Scripture, counts: Sequence[int]) -> "ScriptureStructure":
        """Build from verse counts listed in chapter order."""
        return cls(source, {number: count for number, count in enumerate(counts, start=1)})

    def _validate(self) -> None:
        if not self._verses:
            raise ConfigError(
                f"{self.source.value} has no chapters",
                config_key=self.source.name,
            )
        expected = list(range(1, len(self._verses) + 1))
        if sorted(self._verses) != expected:
            raise ConfigError(
                f"{self.source.value} chapters must be contiguous from 1",
                config_key=self.source.name,
                actual_value=sorted(self._verses),
            )
        for chapter, count in self._verses.items():
            if not isinstance(count, int) or isinstance(count, bool) or count < 1:
                raise ConfigError(
                    f"{self.source.value} chapter {chapter} has invalid verse count",
                    config_key=self.source.name,
                    actual_value=count,
                )

    @property
    def chapter_count(self) -> int:
        return len(self._verses)

    @property
    def verse_count(self) -> int:
        return sum(self._verses.values())

    def verses_in(self, chapter: int) -> int:
        try:
            return self._verses[chapter]
        except KeyError:
            raise OutOfRangeError(
                f"{self.source.value} has no chapter {chapter} "
                f"(valid range 1-{self.chapter_count})",
                source=self.source.value,
                chapter=chapter,
                chapter_count=self.chapter_count,
            ) from None

    def __repr__(self) -> str:
        return (
            f"<ScriptureStructure {self.source.value}: "
            f"{self.chapter_count} chapters, {self.verse_count} verses>"
        )


class ScriptureIndex:
    """
    Read-only lookup over the structures of both scriptures.

    Usage:
        index = ScriptureIndex.default()
        index.verses_in_chapter(Scripture.BHAGAVAD_GITA, 2)   # 72
        index.chapter_count(Scripture.SRIMAD_BHAGAVATAM)      # 19
    """

    RING_START = VerseReference(Scripture.BHAGAVAD_GITA, 1, 1)

    def __init__(self, structures: Mapping[Scripture, ScriptureStructure]):
        missing = [s for s in Scripture if s not in structures]
        if missing:
            raise ConfigError(
                "Scripture index must define every scripture",
                actual_value=[s.value for s in missing],
            )
        self._structures: Dict[Scripture, ScriptureStructure] = dict(structures)

    @classmethod
    def from_counts(cls, counts: Mapping[Scripture, Sequence[int]]) -> "ScriptureIndex":
        return cls({
            source: ScriptureStructure.from_counts(source, verse_counts)
            for source, verse_counts in counts.items()
        })

    @classmethod
    def default(cls) -> "ScriptureIndex":
        return cls.from_counts({
            Scripture.BHAGAVAD_GITA: BHAGAVAD_GITA_CHAPTERS,
            Scripture.SRIMAD_BHAGAVATAM: SRIMAD_BHAGAVATAM_CHAPTERS,
        })

    def structure(self, source: Scripture) -> ScriptureStructure:
        return self._structures[source]

    def verses_in_chapter(self, source: Scripture, chapter: int) -> int:
        """Verse count of chapter; raises OutOfRangeError for unknown chapters."""
        return self._structures[source].verses_in(chapter)

    def chapter_count(self, source: Scripture) -> int:
        return self._structures[source].chapter_count

    def verse_count(self, source: Scripture) -> int:
        return self._structures[source].verse_count

    def total_verses(self) -> int:
        """Size of the canon, i.e. the length of the ring."""
        return sum(s.verse_count for s in self._structures.values())

    def contains(self, reference: VerseReference) -> bool:
        structure = self._structures[reference.source]
        if not 1 <= reference.chapter <= structure.chapter_count:
            return False
        return 1 <= reference.verse <= structure.verses_in(reference.chapter)

    def first_reference(self) -> VerseReference:
        return self.RING_START

    def references(self) -> Iterator[VerseReference]:
        """Every reference of the canon in ring order, starting at the ring start."""
        for source in (self.RING_START.source, self.RING_START.source.other):
            structure = self._structures[source]
            for chapter in range(1, structure.chapter_count + 1):
                for verse in range(1, structure.verses_in(chapter) + 1):
                    yield VerseReference(source, chapter, verse)

    def summary(self) -> Dict[str, Dict[str, int]]:
        return {
            source.value: {
                "chapters": structure.chapter_count,
                "verses": structure.verse_count,
            }
            for source, structure in self._structures.items()
        }


DEFAULT_INDEX = ScriptureIndex.default()
