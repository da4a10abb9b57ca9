"""Fold per-chunk epics into one deduplicated epic list."""

from scrum_master.models import Epic, Priority, Story


def normalize_title(title: str) -> str:
    return title.strip().lower()


def escalate_priority(existing: Priority, incoming: Priority) -> Priority:
    """High always wins, Medium beats Low, Low never downgrades."""
    if incoming == Priority.HIGH:
        return Priority.HIGH
    if incoming == Priority.MEDIUM and existing == Priority.LOW:
        return Priority.MEDIUM
    return existing


def deduplicate_stories(stories: list[Story]) -> list[Story]:
    """Collapse stories sharing a normalized title.

    Each newcomer is compared only against the story currently holding its key
    and replaces it if it has a longer description or more acceptance criteria.
    With three or more duplicates the survivor can therefore depend on order.
    Output keeps first-seen key order.
    """
    by_key: dict[str, Story] = {}
    for story in stories:
        key = normalize_title(story.title)
        existing = by_key.get(key)
        if existing is None:
            by_key[key] = story
        elif len(story.description) > len(existing.description) or len(story.acceptance_criteria) > len(
            existing.acceptance_criteria
        ):
            by_key[key] = story
    return list(by_key.values())


def merge_epics(epics: list[Epic]) -> list[Epic]:
    """Merge epics by normalized title, then dedupe each epic's stories.

    Output keeps the order in which each title was first seen. Input epics are
    never mutated.
    """
    by_key: dict[str, Epic] = {}
    for epic in epics:
        key = normalize_title(epic.title)
        existing = by_key.get(key)
        if existing is None:
            by_key[key] = epic.model_copy(update={"stories": list(epic.stories)})
            continue

        description = epic.description if len(epic.description) > len(existing.description) else existing.description
        by_key[key] = existing.model_copy(
            update={
                "stories": existing.stories + list(epic.stories),
                "description": description,
                "priority": escalate_priority(existing.priority, epic.priority),
            }
        )

    return [epic.model_copy(update={"stories": deduplicate_stories(epic.stories)}) for epic in by_key.values()]
