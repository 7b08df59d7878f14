"""
Declaration lifecycle.

Status changes go through one transition table keyed by (status, event).
A pair missing from the table is an illegal transition; a guard may still
refuse a listed transition by returning the reason.
"""
import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Callable, Dict, Optional, Tuple

from ..exceptions import InvalidTransitionError
from .declaration import Declaration, DeclarationStatus

logger = logging.getLogger(__name__)

VALIDATE = "validate"
SUBMIT = "submit"
ACCEPT = "accept"
REJECT = "reject"

EVENTS = (VALIDATE, SUBMIT, ACCEPT, REJECT)

Guard = Callable[[Declaration, dict], Optional[str]]


@dataclass(frozen=True)
class Transition:
    source: DeclarationStatus
    event: str
    target: DeclarationStatus
    guard: Optional[Guard] = None


def _validation_passed(declaration: Declaration, context: dict) -> Optional[str]:
    result = context.get("validation")
    if result is None:
        return "no validation result supplied"
    if not result.valid:
        return f"validation failed with {len(result.errors)} error(s)"
    if result.fingerprint != declaration.fingerprint():
        return "validation result belongs to different declaration content"
    return None


TRANSITIONS: Dict[Tuple[DeclarationStatus, str], Transition] = {
    (t.source, t.event): t for t in (
        Transition(DeclarationStatus.DRAFT, VALIDATE, DeclarationStatus.VALIDATED, _validation_passed),
        Transition(DeclarationStatus.VALIDATED, SUBMIT, DeclarationStatus.SUBMITTED),
        Transition(DeclarationStatus.SUBMITTED, ACCEPT, DeclarationStatus.ACCEPTED),
        Transition(DeclarationStatus.SUBMITTED, REJECT, DeclarationStatus.REJECTED),
    )
}


def allowed_events(status: DeclarationStatus):
    return sorted(event for (source, event) in TRANSITIONS if source is status)


def apply_event(declaration: Declaration, event: str, **context) -> Declaration:
    """Return a copy of ``declaration`` moved along ``event``"""
    transition = TRANSITIONS.get((declaration.status, event))
    if transition is None:
        raise InvalidTransitionError(declaration.status, event)
    if transition.guard is not None:
        reason = transition.guard(declaration, context)
        if reason:
            raise InvalidTransitionError(declaration.status, event, reason)

    changes = {"status": transition.target}
    if transition.target is DeclarationStatus.VALIDATED:
        changes["validated_on"] = context.get("on") or date.today()

    logger.info(
        "Declaration %s/%s: %s -> %s",
        declaration.company.affiliation_number, declaration.period,
        declaration.status.value, transition.target.value,
    )
    return replace(declaration, **changes)


def mark_validated(declaration: Declaration, validation, on: Optional[date] = None) -> Declaration:
    return apply_event(declaration, VALIDATE, validation=validation, on=on)


def submit(declaration: Declaration) -> Declaration:
    return apply_event(declaration, SUBMIT)


def accept(declaration: Declaration) -> Declaration:
    return apply_event(declaration, ACCEPT)


def reject(declaration: Declaration) -> Declaration:
    return apply_event(declaration, REJECT)
