from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from title_edge.engine.canonicalizer import canonicalize, matching_key, merge_aliases
from title_edge.models import MEDIA_SHOW, CanonicalTitle, NormalizedTitle, TitleSnapshotEntry

logger = logging.getLogger(__name__)

SnapshotRow = Union[TitleSnapshotEntry, Mapping[str, object]]


class IdentityCache:
    """Per-call index of known titles built from a caller-owned snapshot.

    Iteration order is snapshot order. A repeated id replaces the earlier record but keeps
    its position. Exact lookups try the plain matching keys of names and aliases first and
    fall back to the keys of their canonical forms. Nothing here outlives the call that
    built it.
    """

    def __init__(self, titles: Optional[Iterable[CanonicalTitle]] = None):
        self._titles: Dict[str, CanonicalTitle] = {}
        self._position: Dict[str, int] = {}
        self._candidates: Dict[str, List[Tuple[str, CanonicalTitle]]] = {}
        self._by_key: Dict[str, str] = {}
        self._by_canonical_key: Dict[str, str] = {}
        self._by_title_key: Dict[str, str] = {}
        for title in titles or []:
            self._add(title)

    @classmethod
    def from_snapshot(cls, snapshot: Iterable[SnapshotRow]) -> "IdentityCache":
        cache = cls()
        for row in snapshot or []:
            entry = row if isinstance(row, TitleSnapshotEntry) else TitleSnapshotEntry.model_validate(dict(row))
            normalized = canonicalize(entry.canonical_name, entry.media_kind)
            title = CanonicalTitle(
                id=entry.id,
                canonical_name=entry.canonical_name,
                media_kind=normalized.media_kind,
                aliases=list(entry.aliases or []),
                title_key=normalized.title_key,
            )
            cache._add(title, canonical_key=normalized.normalized)
        return cache

    def __len__(self) -> int:
        return len(self._titles)

    def __iter__(self) -> Iterator[CanonicalTitle]:
        return iter(self._titles.values())

    def get(self, title_id: str) -> Optional[CanonicalTitle]:
        return self._titles.get(title_id)

    def find_exact(self, key: str) -> Optional[CanonicalTitle]:
        if not key:
            return None
        title_id = self._by_key.get(key)
        if title_id is None:
            title_id = self._by_canonical_key.get(key)
        return self._titles.get(title_id) if title_id is not None else None

    def find_by_title_key(self, title_key: str) -> Optional[CanonicalTitle]:
        title_id = self._by_title_key.get(title_key)
        return self._titles.get(title_id) if title_id is not None else None

    def candidate_keys(self) -> List[Tuple[str, CanonicalTitle]]:
        """(matching key, title) for every canonical name and alias, in snapshot order.

        Each name contributes its plain matching key and, when different, the key of its
        canonical form, so "Rocky IV" and a stored "Stranger Things: Season 4" alias still
        line up with canonicalized outcome text.
        """
        return [pair for title_id in self._titles for pair in self._candidates[title_id]]

    def resolve(
        self,
        raw_title: str,
        media_kind: str = MEDIA_SHOW,
        id_factory: Optional[Callable[[NormalizedTitle], str]] = None,
    ) -> CanonicalTitle:
        """Return the identity for ``raw_title``, creating it or recording a new alias as needed."""
        normalized = canonicalize(raw_title, media_kind)
        existing = self.find_by_title_key(normalized.title_key)
        if existing is None:
            new_id = id_factory(normalized) if id_factory else normalized.title_key
            created = CanonicalTitle(
                id=new_id,
                canonical_name=normalized.canonical,
                media_kind=normalized.media_kind,
                aliases=[],
                title_key=normalized.title_key,
            )
            if raw_title and raw_title.strip() != normalized.canonical:
                created = created.model_copy(update={"aliases": merge_aliases([], raw_title)})
            self._add(created, canonical_key=normalized.normalized)
            logger.debug("Created canonical title %s for %r", created.id, normalized.canonical)
            return created

        if raw_title and matching_key(raw_title) != matching_key(existing.canonical_name):
            aliases = merge_aliases(existing.aliases, raw_title)
            if aliases != existing.aliases:
                updated = existing.model_copy(update={"aliases": aliases})
                self._titles[updated.id] = updated
                self._candidates[updated.id] = [(key, updated) for key, _ in self._candidates[updated.id]]
                self._index_name(updated, aliases[-1])
                logger.debug("Recorded alias %r for title %s", raw_title, updated.id)
                return updated
        return existing

    def _add(self, title: CanonicalTitle, canonical_key: Optional[str] = None) -> None:
        if title.id in self._titles:
            # Keys owned by the replaced record may belong to another title now.
            self._titles[title.id] = title
            self._rebuild()
            return

        self._position[title.id] = len(self._position)
        self._titles[title.id] = title
        self._candidates[title.id] = []
        self._index_name(title, title.canonical_name, canonical_key)
        for alias in title.aliases:
            self._index_name(title, alias)
        self._claim(self._by_title_key, title.title_key, title.id)

    def _index_name(self, title: CanonicalTitle, name: str, canonical_key: Optional[str] = None) -> None:
        plain = matching_key(name)
        if canonical_key is None:
            canonical_key = canonicalize(name, title.media_kind).normalized

        seen = {key for key, _ in self._candidates[title.id]}
        for key in (plain, canonical_key):
            if key and key not in seen:
                seen.add(key)
                self._candidates[title.id].append((key, title))

        if plain:
            self._claim(self._by_key, plain, title.id)
        if canonical_key:
            self._claim(self._by_canonical_key, canonical_key, title.id)

    def _claim(self, index: Dict[str, str], key: str, title_id: str) -> None:
        owner = index.get(key)
        if owner is None or self._position[title_id] < self._position[owner]:
            index[key] = title_id

    def _rebuild(self) -> None:
        titles = list(self._titles.values())
        self._titles = {}
        self._position = {}
        self._candidates = {}
        self._by_key = {}
        self._by_canonical_key = {}
        self._by_title_key = {}
        for title in titles:
            self._add(title)
