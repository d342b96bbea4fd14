"""
Normalisation helpers that keep summary identity and topic keys deterministic.

Domain and subtopic are lower-cased with whitespace runs collapsed to "_";
summary ids are derived from them, so this must not depend on what the model
happened to return. Topic keys additionally get rewritten to snake_case and
lose any token that spells the contributor's name.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional, Set

from memora.models.domain.summaries import MAX_TOPICS_PER_ENTRY, TopicInfo

_WHITESPACE = re.compile(r"\s+")
_NON_KEY_CHARS = re.compile(r"[^a-z0-9]+")


def normalize_category(value: str) -> str:
    """"Computer Science" -> "computer_science"."""
    return _WHITESPACE.sub("_", (value or "").strip().lower())


def personal_tokens(contributor: Optional[str]) -> Set[str]:
    """Name tokens (and their possessive run-on form) that must not appear in keys."""
    if not contributor:
        return set()
    tokens = {t for t in _NON_KEY_CHARS.split(contributor.lower()) if len(t) >= 2}
    return tokens | {f"{t}s" for t in tokens}


def to_snake_key(value: str, banned: Iterable[str] = ()) -> str:
    banned = set(banned)
    parts = [p for p in _NON_KEY_CHARS.split((value or "").lower()) if p and p not in banned]
    return "_".join(parts)


def normalize_topics(topics: Iterable[TopicInfo], contributor: Optional[str] = None) -> List[TopicInfo]:
    """
    Rewrite keys, drop topics whose key cannot be salvaged, collapse duplicate
    keys (first wins) and cap the list at MAX_TOPICS_PER_ENTRY.
    """
    banned = personal_tokens(contributor)
    seen: Set[str] = set()
    out: List[TopicInfo] = []
    for topic in topics:
        key = to_snake_key(topic.topic_key, banned) or to_snake_key(topic.topic_label, banned)
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(topic.model_copy(update={"topic_key": key}))
        if len(out) == MAX_TOPICS_PER_ENTRY:
            break
    return out
