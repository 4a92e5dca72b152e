"""Local persistence of the current backend session."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from epoch_timesheet.core.models import Session

logger = logging.getLogger(__name__)


class SessionFile:
    """Stores the signed-in session as JSON between CLI invocations."""

    def __init__(self, path: Optional[Path] = None):
        """Initialize session file.

        Args:
            path: Path to session file (default: ~/.epoch/session.json)
        """
        if path is None:
            path = Path.home() / ".epoch" / "session.json"
        self.path = path

    def load(self) -> Optional[Session]:
        """Load the stored session.

        Returns:
            Stored session, or None if there is none or it is unreadable
        """
        if not self.path.exists():
            return None

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            return Session.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return None

    def save(self, session: Session) -> None:
        """Save the session atomically (temp file, then rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = self.path.with_suffix(".tmp")
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(session.to_dict(), f, indent=2)
        os.chmod(temp_file, 0o600)
        temp_file.replace(self.path)
        logger.debug(f"Session saved to {self.path}")

    def clear(self) -> None:
        """Remove the stored session."""
        if self.path.exists():
            self.path.unlink()
            logger.debug(f"Session file {self.path} removed")
