"""
Review trail for trip status overrides and exports
"""
from datetime import datetime
from typing import Iterable, List, Optional
import json
from pathlib import Path

ACTION_STATUS_OVERRIDE = 'status_override'
ACTION_OVERRIDE_CLEARED = 'override_cleared'
ACTION_EXPORT = 'export'


class AuditLog:
    """
    Append-only trail of reviewer actions on trips.

    With a log_path every entry is written as one JSON line; without one the
    trail lives in self.entries for the lifetime of the object.
    """

    def __init__(self, log_path: Optional[str] = None):
        self.log_path = Path(log_path) if log_path else None
        self.entries: List[dict] = []
        if self.log_path is not None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def log_action(
        self,
        action: str,
        user: str,
        details: dict,
        timestamp: Optional[datetime] = None
    ):
        entry = {
            'timestamp': (timestamp or datetime.now()).isoformat(),
            'action': action,
            'user': user,
            'details': details,
        }

        if self.log_path is None:
            self.entries.append(entry)
        else:
            with open(self.log_path, 'a') as f:
                f.write(json.dumps(entry, default=str) + '\n')

    def log_status_override(
        self,
        trip_id: str,
        driver_id: str,
        user: str,
        previous_status: str,
        status: str,
        notes: str
    ):
        """Record a reviewer marking a trip verified or for review"""
        self.log_action(ACTION_STATUS_OVERRIDE, user, {
            'trip_id': trip_id,
            'driver_id': driver_id,
            'previous_status': previous_status,
            'new_status': status,
            'notes': notes,
        })

    def log_override_cleared(self, trip_id: str, status: str, changed: Iterable[str], user: str = "system"):
        """Record an override dropped because the trip's data changed"""
        self.log_action(ACTION_OVERRIDE_CLEARED, user, {
            'trip_id': trip_id,
            'new_status': status,
            'changed_fields': list(changed),
        })

    def log_export(self, export_type: str, user: str, record_count: int):
        self.log_action(ACTION_EXPORT, user, {
            'export_type': export_type,
            'record_count': record_count,
        })

    def _read_entries(self) -> List[dict]:
        if self.log_path is None:
            return list(self.entries)
        if not self.log_path.exists():
            return []
        with open(self.log_path, 'r') as f:
            return [json.loads(line) for line in f if line.strip()]

    def get_recent_logs(self, limit: int = 100) -> list:
        """Most recent entries, oldest first"""
        return self._read_entries()[-limit:]

    def trip_history(self, trip_id: str) -> List[dict]:
        """Every entry concerning one trip, in the order they were logged"""
        return [e for e in self._read_entries() if e['details'].get('trip_id') == trip_id]

    def latest_override(self, trip_id: str) -> Optional[dict]:
        """The trip's last override entry, or None if it was never overridden"""
        overrides = [e for e in self.trip_history(trip_id) if e['action'] == ACTION_STATUS_OVERRIDE]
        return overrides[-1] if overrides else None
