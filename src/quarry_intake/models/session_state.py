from __future__ import annotations

from enum import Enum

"""Import session state machine states.

State transitions:
    idle -> file_selected -> previewed -> period_chosen -> submitting
    submitting -> committed (then back to idle)
    submitting -> rejected (then back to period_chosen, staged rows kept)
"""

__all__ = [
    "SessionState",
]


class SessionState(Enum):
    """Lifecycle of one import session.

    - IDLE: nothing selected
    - FILE_SELECTED: a spreadsheet with an accepted extension is held
    - PREVIEWED: the sheet was parsed into the staging store
    - PERIOD_CHOSEN: a reporting period is selected
    - SUBMITTING: the batch POST is in flight
    - COMMITTED: the backend accepted the batch
    - REJECTED: the backend refused the batch or could not be reached
    """
    IDLE = "idle"
    FILE_SELECTED = "file_selected"
    PREVIEWED = "previewed"
    PERIOD_CHOSEN = "period_chosen"
    SUBMITTING = "submitting"
    COMMITTED = "committed"
    REJECTED = "rejected"
