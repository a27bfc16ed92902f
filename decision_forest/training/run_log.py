"""Trial log writer.

The trial log is an append-only text file shared by successive training
jobs. Each job opens with a job marker and adds one section per report.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from decision_forest.utils import ensure_output_dir

# Marks a section of the trial log
TRIAL_SECTION_MARKER: str = "*" * 66
# Marks a job start in the trial log
JOB_START_MARKER: str = "#" * 66


def write_trial_marker(log_file: Path | str, job_type: str) -> None:
    """Append a job-start marker to the trial log.

    Args:
        log_file: File containing the trial log.
        job_type: Type of job being started.
    """
    ensure_output_dir(log_file)
    with open(log_file, "a", encoding="utf-8") as f:
        f.write(JOB_START_MARKER + "\n")
        f.write(f"{job_type} job at {datetime.now().astimezone().isoformat()}.\n\n")


def write_trial_report(log_file: Path | str, label: str | None, report: str) -> None:
    """Append a report section to the trial log.

    Args:
        log_file: File containing the trial log.
        label: Heading for the section, if any.
        report: Text of the report, with internal new-lines.
    """
    ensure_output_dir(log_file)
    with open(log_file, "a", encoding="utf-8") as f:
        f.write(TRIAL_SECTION_MARKER + "\n")
        if label is not None:
            f.write(label)
        f.write(report + "\n")
