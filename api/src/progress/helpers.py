"""Predicates over a course progress snapshot.

Each one tolerates missing intermediate maps: a lesson absent from
``lessons`` has simply not been started.
"""

from typing import Any

from .models import CourseProgress


# Submission attempts allowed per project part (overridable in settings)
PROJECT_PART_SUBMISSIONS = 3


def _get(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def get_lesson(progress: CourseProgress, lesson: str) -> dict[str, Any] | None:
    return _get(progress, "lessons", lesson)


def get_concept(
    progress: CourseProgress, lesson: str, concept: str
) -> dict[str, Any] | None:
    return _get(progress, "lessons", lesson, "concepts", concept)


def get_project_part(progress: CourseProgress, part: str) -> dict[str, Any] | None:
    return _get(progress, "project", "parts", part)


def has_started_course(progress: CourseProgress) -> bool:
    return bool(_get(progress, "started_at"))


def has_completed_course(progress: CourseProgress) -> bool:
    return bool(_get(progress, "completed_at"))


def has_started_lesson(progress: CourseProgress, lesson: str) -> bool:
    return bool(_get(progress, "lessons", lesson, "started_at"))


def has_completed_lesson(progress: CourseProgress, lesson: str) -> bool:
    return bool(_get(progress, "lessons", lesson, "completed_at"))


def has_started_concept(progress: CourseProgress, lesson: str, concept: str) -> bool:
    return bool(_get(progress, "lessons", lesson, "concepts", concept, "started_at"))


def has_completed_concept(
    progress: CourseProgress, lesson: str, concept: str
) -> bool:
    return bool(
        _get(progress, "lessons", lesson, "concepts", concept, "completed_at")
    )


def has_started_project(progress: CourseProgress) -> bool:
    return bool(_get(progress, "project", "started_at"))


def has_completed_project(progress: CourseProgress) -> bool:
    return bool(_get(progress, "project", "completed_at"))


def has_started_project_part(progress: CourseProgress, part: str) -> bool:
    return bool(_get(progress, "project", "parts", part, "started_at"))


def has_completed_project_part(progress: CourseProgress, part: str) -> bool:
    return bool(_get(progress, "project", "parts", part, "completed_at"))


def get_project_part_submissions(
    progress: CourseProgress, part: str
) -> list[dict[str, Any]]:
    """Submission entries recorded on the course document (oldest first)."""
    return list(_get(progress, "project", "parts", part, "submissions") or [])


def count_quizzes(progress: CourseProgress, lesson: str, concept: str) -> int:
    """Number of quiz results stored for a concept."""
    return len(_get(progress, "lessons", lesson, "concepts", concept, "quizzes") or [])
