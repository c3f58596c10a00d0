from collections import namedtuple

from ..utils.constants import (
    ACTION_APPROVE,
    ACTION_LIKE,
    ACTION_REJECT,
    ACTION_UNDO_REJECT,
    NOTIFICATION_LIKED,
    NOTIFICATION_REJECTED,
    ROLE_ASSISTANT,
    ROLE_OWNER,
    STATUS_ASSISTANT_LIKED,
    STATUS_OWNER_LIKED,
    STATUS_REJECTED,
    STATUS_SUBMITTED,
    STATUSES,
)

Transition = namedtuple("Transition", ["source", "target", "notification"])

# (current status, action) -> (new status, notification email or None)
TRANSITIONS = {
    (STATUS_SUBMITTED, ACTION_LIKE): (STATUS_ASSISTANT_LIKED, NOTIFICATION_LIKED),
    (STATUS_SUBMITTED, ACTION_REJECT): (STATUS_REJECTED, NOTIFICATION_REJECTED),
    (STATUS_ASSISTANT_LIKED, ACTION_REJECT): (STATUS_REJECTED, NOTIFICATION_REJECTED),
    (STATUS_ASSISTANT_LIKED, ACTION_APPROVE): (STATUS_OWNER_LIKED, None),
    (STATUS_REJECTED, ACTION_UNDO_REJECT): (STATUS_ASSISTANT_LIKED, None),
}

ROLE_ACTIONS = {
    ROLE_ASSISTANT: (ACTION_LIKE, ACTION_REJECT, ACTION_UNDO_REJECT),
    ROLE_OWNER: (ACTION_APPROVE, ACTION_REJECT, ACTION_UNDO_REJECT, ACTION_LIKE),
}


class UnknownAction(ValueError):
    def __init__(self, role, action):
        self.role = role
        self.action = action
        allowed = ", ".join(ROLE_ACTIONS.get(role, ()))
        super().__init__(f"Invalid action. Must be one of: {allowed}")


class InvalidTransition(Exception):
    def __init__(self, status, action):
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} a demo in status {status}")


def check_action(role, action):
    if action not in ROLE_ACTIONS.get(role, ()):
        raise UnknownAction(role, action)


def transition(status, action):
    """Return the Transition for ``action`` applied to a demo in ``status``."""
    try:
        target, notification = TRANSITIONS[(status, action)]
    except KeyError:
        raise InvalidTransition(status, action)
    return Transition(status, target, notification)


def source_statuses(action):
    """Statuses from which ``action`` is allowed, in folder order."""
    return [status for status in STATUSES if (status, action) in TRANSITIONS]
