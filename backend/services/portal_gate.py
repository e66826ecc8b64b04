"""
Client portal access gate.

Decides what a visitor to a shareable link may see. Disabled and expired
links are terminal regardless of the password; a password-protected link is
locked until the exact password is supplied.
"""
from datetime import datetime
from typing import Optional

from core.security import passwords_match


class PortalState:
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    DISABLED = "disabled"
    EXPIRED = "expired"
    SUBMITTED = "submitted"

    TERMINAL = (DISABLED, EXPIRED)


PORTAL_MESSAGES = {
    PortalState.DISABLED: "This link has been disabled",
    PortalState.EXPIRED: "This link has expired",
    PortalState.LOCKED: "This link is password protected",
}

LINK_NOT_FOUND_MESSAGE = "This link does not exist"
INCORRECT_PASSWORD_MESSAGE = "Incorrect password"


def link_closed_state(project, now: Optional[datetime] = None) -> Optional[str]:
    """DISABLED or EXPIRED when the link no longer accepts visitors, else None"""
    now = now or datetime.utcnow()
    if project.link_disabled:
        return PortalState.DISABLED
    if project.link_expiry is not None and project.link_expiry < now:
        return PortalState.EXPIRED
    return None


class PortalGate:
    """Access state machine for one visit to a project's link."""

    def __init__(self, project, now: Optional[datetime] = None):
        self.project = project
        self.state = link_closed_state(project, now)
        if self.state is None:
            self.state = PortalState.LOCKED if project.link_password else PortalState.UNLOCKED

    @property
    def is_open(self) -> bool:
        return self.state in (PortalState.UNLOCKED, PortalState.SUBMITTED)

    @property
    def message(self) -> Optional[str]:
        return PORTAL_MESSAGES.get(self.state)

    def unlock(self, password: Optional[str]) -> bool:
        """Try a password. Only a LOCKED gate changes state."""
        if self.state == PortalState.LOCKED and passwords_match(password, self.project.link_password):
            self.state = PortalState.UNLOCKED
        return self.is_open

    def mark_submitted(self) -> None:
        if self.state == PortalState.UNLOCKED:
            self.state = PortalState.SUBMITTED

    def resubmit(self) -> None:
        if self.state == PortalState.SUBMITTED:
            self.state = PortalState.UNLOCKED
