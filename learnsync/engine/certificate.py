"""
Certificate eligibility.

Two gates: a learner becomes *eligible* once enough
lectures are completed, but may *download* only when the whole course is
completed as well.
"""
from dataclasses import dataclass, field

from learnsync.config import CERTIFICATE_THRESHOLD_PERCENT
from learnsync.models.progress import CourseProgressSnapshot
from learnsync.utils.numbers import round_half_up


def certificate_progress_percent(completed_lectures: int, total_lectures: int) -> int:
    """round(completed/total*100), 0 for an empty curriculum."""
    if total_lectures <= 0:
        return 0
    completed = min(max(completed_lectures, 0), total_lectures)
    return int(round_half_up(completed / total_lectures * 100))


def is_certificate_eligible(
    completed_lectures: int,
    total_lectures: int,
    threshold: int = CERTIFICATE_THRESHOLD_PERCENT,
) -> bool:
    if total_lectures <= 0:
        return False
    return certificate_progress_percent(completed_lectures, total_lectures) >= threshold


@dataclass
class CertificateStatus:
    progress_percent: int
    eligible: bool
    can_download: bool
    reasons: list[str] = field(default_factory=list)


def evaluate_certificate(
    snapshot: CourseProgressSnapshot,
    threshold: int = CERTIFICATE_THRESHOLD_PERCENT,
) -> CertificateStatus:
    """Derive eligibility and download permission from course aggregates."""
    progress = certificate_progress_percent(
        snapshot.completedLecturesCount, snapshot.totalLecturesCount
    )
    eligible = is_certificate_eligible(
        snapshot.completedLecturesCount, snapshot.totalLecturesCount, threshold
    )
    reasons = []
    if not eligible:
        if snapshot.totalLecturesCount <= 0:
            reasons.append("Course has no lectures")
        else:
            reasons.append(f"Complete {threshold - progress}% more of the lectures")
    if not snapshot.isCompleted:
        reasons.append("Complete every lecture and quiz of the course")
    return CertificateStatus(
        progress_percent=progress,
        eligible=eligible,
        can_download=eligible and snapshot.isCompleted,
        reasons=reasons,
    )
