"""Centralized knobs for the staff scheduler. Tweak values here instead of touching the generator."""

from pathlib import Path

# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------
DAYS_OF_WEEK = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

# Upper bound on a single generation request (work is days x employees x specializations)
MAX_TOTAL_DAYS = 366

MAX_WORKING_DAYS = len(DAYS_OF_WEEK)

# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------
OFF_LABEL = "Off"
NAME_COLUMN = "Name"
REPORT_TITLE = "Staff Schedule"
EXPORT_FILE_PREFIX = "staff_schedule"

# format name -> file extension
EXPORT_EXTENSIONS = {
    "pdf": "pdf",
    "csv": "csv",
    "excel": "xlsx",
}

# Date columns per PDF table block; wider ranges wrap onto further blocks
PDF_DAYS_PER_PAGE = 9

# ---------------------------------------------------------------------------
# Persistence + logging
# ---------------------------------------------------------------------------
APP_VERSION = "1.0.0"
DEFAULT_DATA_FILE = Path("data") / "staff_data.json"
DEFAULT_LOG_DIR = Path("logs")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
