"""
Adaptation History Log

Append-only, per-user audit trail of applied and rolled-back adaptations.
Records are never edited except for their effectiveness, which is filled in
once monitoring completes.
"""
from typing import Dict, List, Optional
from threading import Lock
import logging

from adaptive_engine.core.exceptions import SnapshotError
from .actions import AdaptationRecord

logger = logging.getLogger(__name__)


class AdaptationHistoryLog:
    """In-memory history log keyed by user id"""

    def __init__(self):
        self._records: Dict[str, List[AdaptationRecord]] = {}
        self._index: Dict[str, AdaptationRecord] = {}
        self._lock = Lock()

    def append(self, record: AdaptationRecord) -> AdaptationRecord:
        with self._lock:
            self._records.setdefault(record.user_id, []).append(record)
            self._index[record.record_id] = record
        logger.debug(
            f"Recorded {record.action_type} adaptation for user={record.user_id} "
            f"trigger={record.trigger}"
        )
        return record

    def list(self, user_id: str, session_id: Optional[str] = None) -> List[AdaptationRecord]:
        records = list(self._records.get(user_id, []))
        if session_id is not None:
            records = [r for r in records if r.session_id == session_id]
        return records

    def get(self, record_id: str) -> Optional[AdaptationRecord]:
        return self._index.get(record_id)

    def set_effectiveness(self, record_id: str, value: float) -> Optional[AdaptationRecord]:
        record = self._index.get(record_id)
        if record is None:
            logger.warning(f"Unknown adaptation record {record_id}")
            return None
        record.effectiveness = max(0.0, min(1.0, value))
        return record

    def export(self, user_id: str) -> List[Dict]:
        return [r.to_dict() for r in self._records.get(user_id, [])]

    def load(self, records: List[Dict]) -> int:
        """Append exported records, e.g. when restoring from persistence"""
        try:
            parsed = [AdaptationRecord.from_dict(r) for r in records]
        except (KeyError, TypeError, ValueError) as e:
            raise SnapshotError(f"Invalid adaptation history: {e}") from e
        for record in parsed:
            self.append(record)
        return len(parsed)
