"""
Turns a sync report and the user's session into a decision about launching.
"""

import getpass
from dataclasses import dataclass
from enum import Enum

from .reconciler import SyncOutcome, SyncReport


class LaunchDecision(Enum):
    LAUNCH = "launch"
    # Installation is inconsistent; ask the user whether to launch anyway.
    CONFIRM = "confirm"
    ABORT = "abort"


@dataclass(frozen=True)
class LaunchSession:
    """
    Who is launching, as established by a sign-in flow outside this package.

    Passed explicitly into ``decide_launch`` instead of living in a global flag.
    """

    username: str = ""
    authenticated: bool = False
    entitled: bool = False

    @classmethod
    def local(cls) -> "LaunchSession":
        """A session for shells that have no sign-in step of their own."""
        try:
            username = getpass.getuser()
        except (KeyError, OSError):
            username = ""
        return cls(username=username, authenticated=True, entitled=True)


def decide_launch(report: SyncReport, session: LaunchSession) -> LaunchDecision:
    if not (session.authenticated and session.entitled):
        return LaunchDecision.ABORT
    if report.outcome is SyncOutcome.SUCCESS:
        return LaunchDecision.LAUNCH
    if report.outcome is SyncOutcome.MISCOUNT_ERROR:
        return LaunchDecision.CONFIRM
    return LaunchDecision.ABORT
