"""
grouping.py – Secondary views over a normalized LessonPlan.

group_by_subject() buckets curriculum links by subject label for the
curriculum-linkage table.  Labels are matched case- and whitespace-
insensitively; the first-seen spelling becomes the group key and the
original order is kept inside each group.

Links whose subject was missing share one group under MISSING_SUBJECT, a
key no real label can take; renderers show it as FALLBACK_SUBJECT.
"""

from __future__ import annotations

from typing import Iterable

from plano_nem.models import FALLBACK_SUBJECT, ContentLink

MISSING_SUBJECT = ""


def _label_key(label: str) -> str:
    return " ".join(label.split()).casefold()


def subject_title(key: str) -> str:
    """Display label for a group key."""
    return key if key != MISSING_SUBJECT else FALLBACK_SUBJECT


def group_by_subject(links: Iterable[ContentLink]) -> dict[str, list[ContentLink]]:
    """Map subject label → ordered list of links; groups appear in first-seen order."""
    groups: dict[str, list[ContentLink]] = {}
    display: dict[str, str] = {}
    for link in links:
        label = MISSING_SUBJECT if link.subject_missing else " ".join((link.asignatura or "").split())
        key   = _label_key(label)
        if key not in display:
            display[key] = label
            groups[label] = []
        groups[display[key]].append(link)
    return groups
