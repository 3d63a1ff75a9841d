"""
Lifecycle State Machines

Transition tables for the entities with a status lifecycle. Every status
write in the workflows is checked against one of these tables.

Example Usage:
    from educrm.utils.state_machine import APPLICATION_LIFECYCLE

    APPLICATION_LIFECYCLE.assert_transition("submitted", "under_review")
    APPLICATION_LIFECYCLE.can_transition("enrolled", "draft")  # False
"""

from enum import Enum
from typing import Generic, Iterable, Mapping, TypeVar, Union

from educrm.models.application import ApplicationStatus, normalize_status
from educrm.models.outreach import OutreachStatus
from educrm.utils.errors import InvalidTransitionError

S = TypeVar("S", bound=Enum)


class StateMachine(Generic[S]):
    """A finite set of states and the legal moves between them.

    States without outgoing transitions are terminal.
    """

    def __init__(self, name: str, states: type[S], transitions: Mapping[S, Iterable[S]]):
        self.name = name
        self.states = states
        self.transitions: dict[S, frozenset[S]] = {
            state: frozenset(transitions.get(state, ())) for state in states
        }

    def _state(self, value: Union[S, str]) -> S:
        try:
            return self.states(value)
        except ValueError:
            raise InvalidTransitionError(self.name, str(value), "?") from None

    def allowed_from(self, current: Union[S, str]) -> frozenset[S]:
        return self.transitions[self._state(current)]

    def is_terminal(self, state: Union[S, str]) -> bool:
        return not self.allowed_from(state)

    def can_transition(self, current: Union[S, str], target: Union[S, str]) -> bool:
        try:
            target_state = self.states(target)
        except ValueError:
            return False
        try:
            return target_state in self.allowed_from(current)
        except InvalidTransitionError:
            return False

    def assert_transition(self, current: Union[S, str], target: Union[S, str]) -> S:
        """Return the target state, or raise if the move is not allowed.

        Raises:
            InvalidTransitionError: If ``current -> target`` is not in the table
        """
        if not self.can_transition(current, target):
            raise InvalidTransitionError(self.name, _value(current), _value(target))
        return self.states(target)


def _value(state: Union[Enum, str]) -> str:
    return state.value if isinstance(state, Enum) else str(state)


class ApplicationLifecycle(StateMachine[ApplicationStatus]):
    """Application lifecycle; accepts legacy status names."""

    def _state(self, value):
        if isinstance(value, str):
            value = normalize_status(value)
        return super()._state(value)

    def can_transition(self, current, target) -> bool:
        if isinstance(target, str):
            target = normalize_status(target)
        return super().can_transition(current, target)

    def assert_transition(self, current, target) -> ApplicationStatus:
        if isinstance(target, str):
            target = normalize_status(target)
        return super().assert_transition(current, target)


AS = ApplicationStatus
_EXITS = {AS.REJECTED, AS.WITHDRAWN}

APPLICATION_LIFECYCLE = ApplicationLifecycle(
    "application",
    ApplicationStatus,
    {
        AS.DRAFT: {AS.DOCUMENTS_PENDING, AS.SUBMITTED} | _EXITS,
        AS.DOCUMENTS_PENDING: {AS.SUBMITTED} | _EXITS,
        AS.SUBMITTED: {AS.UNDER_REVIEW, AS.CONDITIONAL_OFFER, AS.UNCONDITIONAL_OFFER} | _EXITS,
        AS.UNDER_REVIEW: {AS.CONDITIONAL_OFFER, AS.UNCONDITIONAL_OFFER} | _EXITS,
        AS.CONDITIONAL_OFFER: {AS.UNCONDITIONAL_OFFER, AS.VISA_PROCESSING} | _EXITS,
        AS.UNCONDITIONAL_OFFER: {AS.VISA_PROCESSING, AS.ENROLLED} | _EXITS,
        AS.VISA_PROCESSING: {AS.ENROLLED} | _EXITS,
        AS.ENROLLED: set(),
        AS.REJECTED: set(),
        AS.WITHDRAWN: set(),
    },
)

OS = OutreachStatus

OUTREACH_LIFECYCLE = StateMachine(
    "outreach",
    OutreachStatus,
    {
        OS.DRAFT: {OS.SENT, OS.CLOSED},
        OS.SENT: {OS.RESPONDED, OS.FOLLOW_UP_NEEDED, OS.CLOSED},
        OS.FOLLOW_UP_NEEDED: {OS.RESPONDED, OS.CLOSED},
        OS.RESPONDED: {OS.CLOSED},
        OS.CLOSED: set(),
    },
)
