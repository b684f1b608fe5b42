"""Audit trail of appliance mutations.

Each create, update and delete sent to an appliance becomes one JSON line
in ``audit.log``, accepted or not. Reads are not audited.
"""
import json
import logging
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, Optional

audit_logger = logging.getLogger("ipam_reconciler.audit")

DEFAULT_AUDIT_DIR = "~/.ipam-reconciler"
AUDIT_FILE_NAME = "audit.log"


def default_audit_file() -> str:
    return os.path.join(os.path.expanduser(DEFAULT_AUDIT_DIR), AUDIT_FILE_NAME)


def setup_audit_logging(log_dir: Optional[str] = None) -> None:
    """Send audit records to ``<log_dir>/audit.log`` (default ~/.ipam-reconciler)."""
    directory = Path(log_dir or os.path.expanduser(DEFAULT_AUDIT_DIR))
    directory.mkdir(parents=True, exist_ok=True)

    for old in list(audit_logger.handlers):
        audit_logger.removeHandler(old)
        old.close()

    handler = RotatingFileHandler(
        directory / AUDIT_FILE_NAME, maxBytes=10 * 1024 * 1024, backupCount=10
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)
    audit_logger.setLevel(logging.INFO)
    audit_logger.propagate = False


@dataclass
class ChangeRecord:
    """One audited mutation."""
    timestamp: str
    appliance_id: str
    entity_type: str
    operation: str  # create, update or delete
    identifier: str  # empty when the appliance assigned none
    parameters: dict
    success: bool
    error: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, line: str) -> "ChangeRecord":
        return cls(**json.loads(line))


class ChangeTracker:
    """Writes audit records on behalf of one appliance."""

    def __init__(self, appliance_id: str):
        self.appliance_id = appliance_id

    def log_change(
        self,
        entity_type: str,
        operation: str,
        identifier: str,
        parameters: dict,
        success: bool,
        error: Optional[str] = None,
    ) -> ChangeRecord:
        """Record one mutation and return the written record.

        ``parameters`` are the request parameters exactly as sent.
        """
        record = ChangeRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            appliance_id=self.appliance_id,
            entity_type=entity_type,
            operation=operation,
            identifier=identifier,
            parameters=dict(parameters),
            success=success,
            error=error,
        )
        audit_logger.info(record.to_json())
        return record


def _read_records(path: str) -> Iterator[ChangeRecord]:
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                yield ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # not one of ours


def get_recent_changes(
    log_file: Optional[str] = None,
    appliance_id: Optional[str] = None,
    entity_type: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Return up to ``limit`` audited changes, newest first.

    Args:
        log_file: Audit file, defaults to ~/.ipam-reconciler/audit.log
        appliance_id: Only changes sent to this appliance
        entity_type: Only changes to this entity type
        limit: Maximum number of records
    """
    path = log_file or default_audit_file()
    if not os.path.exists(path):
        return []

    matching = [
        record for record in _read_records(path)
        if (appliance_id is None or record.appliance_id == appliance_id)
        and (entity_type is None or record.entity_type == entity_type)
    ]
    return matching[::-1][:limit]
