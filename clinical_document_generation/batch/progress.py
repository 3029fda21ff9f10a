"""
Progress/Status Projection

Read-only display aggregates, recomputed from group/session state on
every call. Nothing is cached, so there is nothing to invalidate.
"""

from typing import Iterable

from clinical_document_generation.core.enums import UnitStatus
from clinical_document_generation.core.models import BatchProgress, ClientGroup


def compute_progress(groups: Iterable[ClientGroup]) -> BatchProgress:
    """
    Compute batch progress.

    Report units are non-empty sessions of session-note groups plus
    non-session-note groups that have files. Empty sessions and empty
    groups count nowhere.

    percent_complete = completed_groups / total_eligible_groups * 100,
    and 0.0 when no group has eligible work.
    """
    total_units = 0
    queued_units = 0
    completed_groups = 0
    errored_groups = 0
    eligible_groups = 0

    for group in groups:
        if group.is_session_note:
            sessions = group.eligible_sessions
            total_units += len(sessions)
            queued_units += sum(1 for s in sessions if s.status == UnitStatus.QUEUED)
        elif group.files:
            total_units += 1
            if group.status == UnitStatus.QUEUED:
                queued_units += 1

        if group.has_work:
            eligible_groups += 1
        if group.status == UnitStatus.COMPLETED:
            completed_groups += 1
        elif group.status == UnitStatus.ERROR:
            errored_groups += 1

    percent = (completed_groups / eligible_groups * 100) if eligible_groups else 0.0

    return BatchProgress(
        total_report_units=total_units,
        queued_units=queued_units,
        completed_groups=completed_groups,
        errored_groups=errored_groups,
        total_eligible_groups=eligible_groups,
        percent_complete=percent,
    )
