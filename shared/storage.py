"""
Local JSON storage for the tracking record.

The whole record is rewritten on every save: the JSON is written to a
temporary file next to the target and moved over it with ``os.replace``,
so readers never see a half-written file.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from config.settings import TrackerSettings
from shared.models import TrackingRecord

logger = logging.getLogger(__name__)


class TrackingStore:
    """Load and save the tracking record from a single JSON file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    @classmethod
    def from_settings(cls, tracker_settings: TrackerSettings) -> "TrackingStore":
        """Create a store from tracker settings."""
        return cls(Path(tracker_settings.data_dir) / tracker_settings.data_file)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> TrackingRecord:
        """
        Load the tracking record.

        Returns a fresh record when the file is missing. A file that cannot
        be read, is not JSON or does not match the record shape is logged
        and replaced by defaults; valid fields are not salvaged.
        """
        if not self.exists():
            logger.info(f"No tracking data at {self.path}, starting fresh")
            return TrackingRecord()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            return TrackingRecord.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            # json.JSONDecodeError is a ValueError
            logger.error(f"Error loading tracking data from {self.path}: {e}")
            return TrackingRecord()

    def save(self, record: TrackingRecord) -> None:
        """Replace the stored record with ``record``."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record.to_storage_dict(), f, indent=2)
                f.write("\n")
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"Saved tracking data to {self.path}")
