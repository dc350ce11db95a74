"""
Submission sinks - where finalized survey payloads go.

A sink is any callable taking (submission_id, payload). Its return value is
passed back to the caller as the submission receipt. Transport is the
sink's business; the engine has no opinion on it.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from survey_backend.utils.display_helpers import format_submission_message

logger = logging.getLogger(__name__)


class JSONFileSubmissionSink:
    """
    Writes each finalized payload to its own JSON file.

    Layout:
        outputs/submissions/
            submission_20251126_153045_a3f7e2b9.json
            ...

    Design:
    - Append-only (never overwrite)
    - One file per submission
    """

    def __init__(self, base_dir: str):
        """
        Initialize sink.

        Args:
            base_dir: Directory for submission files
        """
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"JSONFileSubmissionSink initialized: {self.base_dir}")

    def filename_for(self, submission_id: str) -> str:
        """submission_{YYYYMMDD_HHMMSS}_{submission_id}.json"""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return f"submission_{timestamp}_{submission_id}.json"

    def __call__(self, submission_id: str, payload: Dict[str, Any]) -> str:
        """
        Save payload.

        Args:
            submission_id: Submission identifier
            payload: Finalized payload

        Returns:
            str: Absolute path to saved file

        Raises:
            FileExistsError: If the file already exists (double-submit)
        """
        filename = self.filename_for(submission_id)
        filepath = self.base_dir / filename

        if filepath.exists():
            raise FileExistsError(
                f"Submission file already exists: {filepath}. "
                f"This indicates a double-submit."
            )

        record = {'submission_id': submission_id, 'payload': payload}
        with open(filepath, 'w') as f:
            json.dump(record, f, indent=2, ensure_ascii=False)

        abs_path = str(filepath.absolute())
        logger.info(f"Saved submission {submission_id}: {filename}")
        return abs_path


class LoggingSubmissionSink:
    """Logs the success message for each finalized payload"""

    def __init__(self, log: logging.Logger = logger):
        self.log = log

    def __call__(self, submission_id: str, payload: Dict[str, Any]) -> str:
        message = format_submission_message(payload)
        self.log.info(f"[{submission_id}] {message}")
        return message
