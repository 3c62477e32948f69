"""
Custom log handlers for the ticket bot.

Rotating file handlers with gzip compression of rotated files, plus an
audit variant that keeps the audit trail readable by its owner only.
"""

import logging
import logging.handlers
import os
import gzip
import shutil
from pathlib import Path
from typing import Optional
from datetime import datetime


class RotatingFileHandler(logging.handlers.RotatingFileHandler):
    """
    Rotating file handler that compresses rotated files.
    """

    def __init__(self, filename: str, max_bytes: int = 10485760, backup_count: int = 5,
                 encoding: Optional[str] = None, compress_rotated: bool = True):
        """
        Initialize the rotating file handler.

        Args:
            filename: Path to the log file
            max_bytes: Maximum size of log file before rotation (default: 10MB)
            backup_count: Number of backup files to keep
            encoding: File encoding (default: utf-8)
            compress_rotated: Whether to gzip rotated files
        """
        self.compress_rotated = compress_rotated

        Path(filename).parent.mkdir(parents=True, exist_ok=True)

        super().__init__(
            filename=filename,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding=encoding or 'utf-8'
        )

    def rotation_filename(self, default_name: str) -> str:
        """Rotated files carry a .gz suffix when compression is enabled."""
        if self.compress_rotated:
            return f"{default_name}.gz"
        return default_name

    def rotate(self, source: str, dest: str):
        """Move the live log aside, compressing it if enabled."""
        if not self.compress_rotated:
            super().rotate(source, dest)
            return

        if os.path.exists(source):
            with open(source, 'rb') as f_in, gzip.open(dest, 'wb') as f_out:
                shutil.copyfileobj(f_in, f_out)
            os.remove(source)


class AuditFileHandler(RotatingFileHandler):
    """
    File handler for the audit trail.

    Keeps the audit file at owner-only permissions after creation and rollover.
    """

    PERMISSION_CHECK_INTERVAL = 300

    def __init__(self, filename: str, max_bytes: int = 20971520, backup_count: int = 10,
                 encoding: Optional[str] = None):
        """
        Initialize the audit file handler.

        Args:
            filename: Path to the audit log file
            max_bytes: Maximum size before rotation (default: 20MB)
            backup_count: Number of backup files to keep (default: 10)
            encoding: File encoding
        """
        super().__init__(
            filename=filename,
            max_bytes=max_bytes,
            backup_count=backup_count,
            encoding=encoding,
            compress_rotated=True
        )
        self._last_permission_check: Optional[datetime] = None
        self._set_secure_permissions()

    def _set_secure_permissions(self):
        """Restrict the audit log to read/write by its owner (600)."""
        try:
            if os.path.exists(self.baseFilename):
                os.chmod(self.baseFilename, 0o600)
        except OSError as e:
            logging.getLogger(__name__).warning(f"Could not set secure permissions on audit log: {e}")

    def emit(self, record: logging.LogRecord):
        super().emit(record)

        now = datetime.now()
        if (self._last_permission_check is None or
                (now - self._last_permission_check).total_seconds() > self.PERMISSION_CHECK_INTERVAL):
            self._set_secure_permissions()
            self._last_permission_check = now

    def doRollover(self):
        """Perform rollover and re-secure the fresh file."""
        super().doRollover()
        self._set_secure_permissions()
