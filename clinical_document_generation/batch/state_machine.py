"""
Per-Unit State Machine

Pure transition function shared by groups and sessions:

    QUEUED     --START-->   PROCESSING
    PROCESSING --SUCCEED--> COMPLETED   (result_patient_name set)
    PROCESSING --FAIL-->    ERROR       (last_error set)
    ERROR      --REQUEUE--> QUEUED      (start of the next run)

Any other (status, event) pair raises InvalidTransitionError. Units are
never mutated in place; the caller stores the returned copy.
"""

from dataclasses import replace
from typing import Dict, Optional, Tuple, TypeVar, Union

from clinical_document_generation.core.constants import GENERIC_UNIT_ERROR
from clinical_document_generation.core.enums import UnitEvent, UnitStatus
from clinical_document_generation.core.exceptions import InvalidTransitionError
from clinical_document_generation.core.models import ClientGroup, Session


Unit = TypeVar("Unit", ClientGroup, Session)

TRANSITIONS: Dict[Tuple[UnitStatus, UnitEvent], UnitStatus] = {
    (UnitStatus.QUEUED, UnitEvent.START): UnitStatus.PROCESSING,
    (UnitStatus.PROCESSING, UnitEvent.SUCCEED): UnitStatus.COMPLETED,
    (UnitStatus.PROCESSING, UnitEvent.FAIL): UnitStatus.ERROR,
    (UnitStatus.ERROR, UnitEvent.REQUEUE): UnitStatus.QUEUED,
}


def next_status(status: UnitStatus, event: UnitEvent) -> UnitStatus:
    """Target status for an event, or InvalidTransitionError."""
    try:
        return TRANSITIONS[(status, event)]
    except KeyError:
        raise InvalidTransitionError(status.value, event.value)


def can_transition(unit: Union[ClientGroup, Session], event: UnitEvent) -> bool:
    return (unit.status, event) in TRANSITIONS


def transition(
    unit: Unit,
    event: UnitEvent,
    *,
    patient_name: Optional[str] = None,
    error: Optional[str] = None,
) -> Unit:
    """
    Apply an event to a group or session.

    Args:
        unit: Current group or session
        event: Event to apply
        patient_name: Resolved patient (SUCCEED only)
        error: Failure message (FAIL only; defaults to "Generation failed")

    Returns:
        A copy of the unit in its new state

    Raises:
        InvalidTransitionError: If the event is not legal for unit.status
    """
    status = next_status(unit.status, event)

    if event == UnitEvent.SUCCEED:
        return replace(unit, status=status, result_patient_name=patient_name, last_error=None)
    if event == UnitEvent.FAIL:
        return replace(unit, status=status, last_error=error or GENERIC_UNIT_ERROR)
    # START and REQUEUE clear the previous run's error
    return replace(unit, status=status, last_error=None)
