"""Medical report export to markdown files."""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Callable

from clinical_agents.utils.logging import get_logger

logger = get_logger(__name__)

UNKNOWN_PATIENT = "Unknown_Patient"
MIN_REPORT_LENGTH = 50
MAX_FILENAME_NAME_LENGTH = 50

SAVE_REPORT_DESCRIPTION = (
    "Saves the medical report into a markdown file. Call this only ONCE per report."
)

_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitize_patient_name(name: str | None) -> str:
    """Make a patient name safe to embed in a file name.

    Strips path separators, parent references and characters that are
    invalid in file names, replaces spaces with underscores and caps the
    length at 50.
    """
    if not name or not name.strip():
        return UNKNOWN_PATIENT

    sanitized = _INVALID_FILENAME_CHARS.sub("", name.strip())
    sanitized = sanitized.replace("..", "").replace(" ", "_")
    sanitized = sanitized[:MAX_FILENAME_NAME_LENGTH]
    return sanitized if sanitized.strip("._") else UNKNOWN_PATIENT


class MarkdownReportExporter:
    """Writes one markdown file per report under a dedicated directory."""

    def __init__(
        self,
        output_dir: str | Path = "reports",
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._output_dir = Path(output_dir)
        self._clock = clock

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def _target_path(self, sanitized: str, stamp: str) -> Path:
        path = self._output_dir / f"Report_{sanitized}_{stamp}.md"
        counter = 1
        while path.exists():
            path = self._output_dir / f"Report_{sanitized}_{stamp}_{counter}.md"
            counter += 1
        return path

    def render(self, report_content: str, patient_name: str, generated_at: datetime) -> str:
        return (
            "# Medical Report\n\n"
            f"**Patient:** {patient_name}  \n"
            f"**Generated:** {generated_at:%Y-%m-%d %H:%M:%S}\n\n"
            "---\n\n"
            f"{report_content.strip()}\n"
        )

    def save_report(self, report_content: str, patient_name: str = UNKNOWN_PATIENT) -> str:
        """Validate and write a report; never overwrites an existing file.

        Args:
            report_content: Full report text
            patient_name: Patient's full name as found in the conversation

        Returns:
            ``Success: Report saved to <path>`` or an ``Error: ...`` string
        """
        if not report_content or not report_content.strip():
            return "Error: Cannot create report with empty report content."
        if len(report_content) < MIN_REPORT_LENGTH:
            return (
                "Error: Report content seems too short "
                f"(minimum {MIN_REPORT_LENGTH} characters expected)."
            )

        now = self._clock()
        sanitized = sanitize_patient_name(patient_name)

        try:
            self._output_dir.mkdir(parents=True, exist_ok=True)
            path = self._target_path(sanitized, f"{now:%Y%m%d_%H%M%S}")
            display_name = patient_name.strip() if patient_name and patient_name.strip() else UNKNOWN_PATIENT
            path.write_text(self.render(report_content, display_name, now), encoding="utf-8")
        except PermissionError as e:
            logger.error("Report write denied", error=str(e))
            return f"Error: Permission denied writing to file - {e}"
        except OSError as e:
            logger.error("Report write failed", error=str(e))
            return f"Error: File I/O error - {e}"

        logger.info("Report saved", path=str(path))
        return f"Success: Report saved to {path}"
