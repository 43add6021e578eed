# services/report_service.py
import csv
import logging
import re
from pathlib import Path

from app.core.errors import NotFoundError
from app.models.schemas.history import ReportLinkModel
from app.services.assignment_service import AssignmentService

logger = logging.getLogger(__name__)

REPORT_FILENAME_RE = re.compile(r"^report_\d{4}-\d{2}\.csv$")
REPORT_HEADER = ["user_id", "segment", "operation", "operation_at"]


class ReportService:
    def __init__(self, assignment_service: AssignmentService, reports_dir: str | Path, base_url: str):
        self.assignment_service = assignment_service
        self.reports_dir = Path(reports_dir)
        self.base_url = base_url.rstrip("/")

    def generate_report(self, year: int, month: int) -> ReportLinkModel:
        """Writes the month's history to a CSV file and returns its download link."""
        entries = self.assignment_service.get_history(year, month)

        filename = f"report_{year:04d}-{month:02d}.csv"
        self.reports_dir.mkdir(parents=True, exist_ok=True)
        with open(self.reports_dir / filename, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(REPORT_HEADER)
            for entry in entries:
                writer.writerow(
                    [
                        entry.user_id,
                        entry.slug,
                        entry.operation.value,
                        entry.operation_at.strftime("%Y-%m-%d %H:%M:%S"),
                    ]
                )

        logger.info("Wrote %d history entries to %s", len(entries), filename)
        return ReportLinkModel(download_link=f"{self.base_url}/reports/{filename}")

    def get_report_path(self, filename: str) -> Path:
        # Only names this service produces, nothing that can escape reports_dir
        if not REPORT_FILENAME_RE.match(filename):
            raise NotFoundError(f"Report {filename} not found.")
        path = self.reports_dir / filename
        if not path.is_file():
            raise NotFoundError(f"Report {filename} not found.")
        return path
