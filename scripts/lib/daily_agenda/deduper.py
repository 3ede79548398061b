"""Task-key normalization and unclear-item deduplication."""

import re

from .models import UnclearItem


def normalize_task_key(text: str) -> str:
    """
    Normalize task text into an identity key.
    - Strip surrounding whitespace
    - Lowercase
    - Collapse internal whitespace runs to one space

    Two phrasings that differ by anything else are different tasks.
    """
    return re.sub(r"\s+", " ", text.strip()).lower()


def merge_unclear_items(
    existing: list[UnclearItem], detected: list[UnclearItem]
) -> list[UnclearItem]:
    """
    Merge deterministic carry-over items into an existing unclear list.

    Existing items (e.g. from an LLM triage) keep their order and wording;
    detected items are appended only when their normalized task text is not
    already present.
    """
    seen = {normalize_task_key(item.task) for item in existing}
    merged = list(existing)

    for item in detected:
        key = normalize_task_key(item.task)
        if key and key not in seen:
            seen.add(key)
            merged.append(item)

    return merged
