import json
import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class OperatorMetricsLogger:
    def __init__(self, log_file: str = "operator_metrics.log"):
        self.log_file = log_file
        self.session_id = str(int(time.time()))
        self.session_start = time.time()
        self.tasks_seen = 0
        self.tasks_responded = 0
        self.tasks_dropped = 0

    def log_session_start(self, operator_address: str, chain_id: int):
        """Log the start of an operator session"""
        entry = {
            "timestamp": datetime.now().isoformat(),
            "session_id": self.session_id,
            "event": "session_start",
            "operator": operator_address,
            "chain_id": chain_id,
        }
        self._write_log(entry)

    def log_registration(self, tx_hash: str):
        entry = {
            "timestamp": datetime.now().isoformat(),
            "session_id": self.session_id,
            "event": "registration",
            "tx_hash": tx_hash,
        }
        self._write_log(entry)

    def log_task_response(
        self,
        task_index: int,
        task_name: str,
        status: str,
        attempts: int,
        elapsed: float,
        tx_hash: Optional[str] = None,
        error: Optional[str] = None,
    ):
        """Log the outcome of one task ("responded", "dropped" or "failed")"""
        self.tasks_seen += 1
        if status == "responded":
            self.tasks_responded += 1
        elif status == "dropped":
            self.tasks_dropped += 1

        entry = {
            "timestamp": datetime.now().isoformat(),
            "session_id": self.session_id,
            "event": "task_response",
            "task_index": task_index,
            "task_name": task_name,
            "status": status,
            "attempts": attempts,
            "tx_hash": tx_hash,
            "error": error,
            "response_time_seconds": elapsed,
            "runtime_minutes": (time.time() - self.session_start) / 60,
        }
        self._write_log(entry)

    def log_session_end(self, reason: str = "shutdown"):
        """Log end of operator session"""
        runtime_hours = (time.time() - self.session_start) / 3600

        entry = {
            "timestamp": datetime.now().isoformat(),
            "session_id": self.session_id,
            "event": "session_end",
            "reason": reason,
            "tasks_seen": self.tasks_seen,
            "tasks_responded": self.tasks_responded,
            "tasks_dropped": self.tasks_dropped,
            "runtime_hours": runtime_hours,
        }
        self._write_log(entry)

    def _write_log(self, entry: Dict[str, Any]):
        """Write log entry to file"""
        try:
            with open(self.log_file, "a") as f:
                f.write(json.dumps(entry) + "\n")
        except OSError as e:
            logger.warning(f"Failed to write operator metrics log: {e}")
