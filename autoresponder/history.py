"""
JSON-file history of triage runs
"""

import os
import json
import logging
from datetime import datetime
from typing import Any, Dict, List

from .models import TriageReport

logger = logging.getLogger(__name__)


class RunHistory:
    """Simple JSON database of completed triage runs"""

    def __init__(self, filepath: str, max_entries: int = 100):
        self.filepath = filepath
        self.max_entries = max_entries
        self.data = self.load()

    def _empty(self) -> Dict[str, Any]:
        return {
            "runs": [],
            "totals": {"runs": 0, "replied": 0, "failed": 0, "skipped": 0},
            "last_updated": datetime.now().isoformat()
        }

    def load(self) -> Dict[str, Any]:
        if os.path.exists(self.filepath):
            try:
                with open(self.filepath, 'r') as f:
                    data = json.load(f)
                if isinstance(data, dict) and isinstance(data.get("runs"), list):
                    data.setdefault("totals", self._empty()["totals"])
                    return data
                logger.warning("Run log %s has an unexpected layout, starting fresh", self.filepath)
            except (json.JSONDecodeError, OSError) as e:
                logger.warning("Could not read run log %s: %s", self.filepath, e)

        return self._empty()

    def save(self):
        directory = os.path.dirname(self.filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self.data["last_updated"] = datetime.now().isoformat()

        with open(self.filepath, 'w') as f:
            json.dump(self.data, f, indent=2, default=str)

    def record(self, report: TriageReport):
        """Append a run and update the running totals"""
        self.data["runs"].append(report.model_dump(mode="json"))
        if len(self.data["runs"]) > self.max_entries:
            self.data["runs"] = self.data["runs"][-self.max_entries:]

        totals = self.data["totals"]
        totals["runs"] += 1
        totals["replied"] += report.replied_count
        totals["skipped"] += report.skipped_count
        totals["failed"] += report.failed_count
        self.save()

    def recent(self, limit: int = 10) -> List[Dict[str, Any]]:
        return self.data["runs"][-limit:] if limit > 0 else []

    def get_stats(self) -> Dict[str, Any]:
        runs = self.data["runs"]
        return {
            **self.data["totals"],
            "last_activity": runs[-1].get("completed_at") if runs else None
        }
