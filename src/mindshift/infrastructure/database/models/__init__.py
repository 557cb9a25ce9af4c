"""
Database ORM models package.
"""

from mindshift.infrastructure.database.models.crisis_alert_model import CrisisAlertModel
from mindshift.infrastructure.database.models.handoff_request_model import HandoffRequestModel
from mindshift.infrastructure.database.models.session_archive_model import SessionArchiveModel

__all__ = [
    "CrisisAlertModel",
    "HandoffRequestModel",
    "SessionArchiveModel",
]
