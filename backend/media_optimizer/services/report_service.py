import csv
import io
import logging
from datetime import date
from typing import Optional, List, Sequence

from fpdf import FPDF

from media_optimizer.services.batch_service import BatchCoordinator, BatchEntry
from media_optimizer.utils.ffmpeg import quote
from media_optimizer.utils.file_utils import format_file_size

logger = logging.getLogger(__name__)

APP_NAME = "Media Optimizer"

CSV_HEADER = [
    "File", "Original Size (MB)", "Video Codec", "Resolution",
    "Optimized Size (MB)", "Saved (MB)", "Saved (%)",
]

EXPORT_FILENAMES = {
    "bash": ("media-optimizer-batch.sh", "text/x-shellscript"),
    "powershell": ("media-optimizer-batch.ps1", "text/plain"),
    "csv": ("media-optimizer-report.csv", "text/csv"),
    "pdf": ("media-optimizer-report.pdf", "application/pdf"),
}

ACCENT = (37, 106, 244)
STRIPE = (240, 244, 255)


def _mb(size_bytes: int) -> str:
    return f"{size_bytes / 1024 / 1024:.2f}"


def _comment_safe(text: str) -> str:
    """Single-line text for a script comment."""
    return " ".join(text.splitlines())


def _pdf_safe(text: str) -> str:
    """Core PDF fonts only cover Latin-1; anything else prints as '?'."""
    return text.encode("latin-1", "replace").decode("latin-1")


def _shorten(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit - 3] + "..."


class BatchReportDocument(FPDF):
    """Landscape A4 batch report: title block, summary pairs, file table."""

    def __init__(self, title: str):
        super().__init__(orientation="L", unit="mm", format="A4")
        self.report_title = _pdf_safe(title)
        self.alias_nb_pages()
        self.set_auto_page_break(auto=True, margin=20)

    def header(self):
        self.set_font("Helvetica", "I", 9)
        self.set_text_color(110, 110, 110)
        self.cell(0, 8, self.report_title, align="R")
        self.ln(10)

    def footer(self):
        self.set_y(-15)
        self.set_font("Helvetica", "", 8)
        self.set_text_color(150, 150, 150)
        self.cell(0, 10, f"{self.page_no()} / {{nb}}", align="C")

    def write_text(self, width: float, height: float, text: str, **kwargs):
        self.cell(width, height, _pdf_safe(text), **kwargs)

    def title_block(self, subtitle: str):
        self.set_font("Helvetica", "B", 20)
        self.set_text_color(*ACCENT)
        self.write_text(0, 12, self.report_title, new_x="LMARGIN", new_y="NEXT")
        self.set_font("Helvetica", "", 10)
        self.set_text_color(120, 120, 120)
        self.write_text(0, 6, subtitle, new_x="LMARGIN", new_y="NEXT")
        self.ln(4)

    def heading(self, text: str):
        self.ln(4)
        self.set_font("Helvetica", "B", 13)
        self.set_text_color(*ACCENT)
        self.write_text(0, 9, text, new_x="LMARGIN", new_y="NEXT")
        self.set_draw_color(*ACCENT)
        self.set_line_width(0.4)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.ln(3)

    def summary(self, pairs: Sequence[Sequence[str]]):
        for label, value in pairs:
            self.set_font("Helvetica", "B", 10)
            self.set_text_color(60, 60, 60)
            self.write_text(55, 7, f"{label}:", new_x="END")
            self.set_font("Helvetica", "", 10)
            self.set_text_color(30, 30, 30)
            self.write_text(0, 7, value, new_x="LMARGIN", new_y="NEXT")

    def table(self, widths: Sequence[float], header: Sequence[str],
              rows: Sequence[Sequence[str]], totals: Sequence[str]):
        self.set_font("Helvetica", "B", 8)
        self.set_fill_color(*ACCENT)
        self.set_text_color(255, 255, 255)
        for w, h in zip(widths, header):
            self.write_text(w, 8, h, fill=True, align="C")
        self.ln()

        self.set_text_color(30, 30, 30)
        for index, row in enumerate(rows):
            self.set_font("Helvetica", "", 8)
            self.set_fill_color(*(STRIPE if index % 2 == 0 else (255, 255, 255)))
            for col, (w, value) in enumerate(zip(widths, row)):
                self.write_text(w, 7, _shorten(value, 45) if col == 0 else value,
                                fill=True, align="L" if col == 0 else "C")
            self.ln()

        self.set_font("Helvetica", "B", 8)
        self.set_draw_color(*ACCENT)
        for col, (w, value) in enumerate(zip(widths, totals)):
            self.write_text(w, 8, value, border="T", align="L" if col == 0 else "C")
        self.ln()


class ReportService:
    """Export artifacts for a batch: encode scripts and reports.

    All builders are pure: they return the artifact and touch nothing else.
    Every file name written into a script goes through ``quote`` for that
    script's shell.
    """

    def __init__(self, batch: BatchCoordinator, generated_on: Optional[date] = None):
        self.batch = batch
        self.generated_on = generated_on or date.today()

    @property
    def _profile_label(self) -> str:
        return "Profile" if self.batch.is_profile else "Preset"

    def _header_lines(self) -> List[str]:
        stats = self.batch.aggregate_stats()
        return [
            f"# Script generated by {APP_NAME}",
            f"# Date: {self.generated_on.isoformat()}",
            f"# {self._profile_label}: {self.batch.profile_id}",
            f"# Estimated savings: {format_file_size(stats.total_saved)}",
            "",
        ]

    # ── Scripts ────────────────────────────────────────────────────────

    def _script(self, shell: str, say, status_check: List[str], preamble: List[str]) -> str:
        entries = self.batch.entries
        total = len(entries)
        lines = preamble + self._header_lines()
        lines += [
            say(f"{APP_NAME} - Batch encode", "Cyan"),
            say("====================================", "Cyan"),
            say(f"Files to process: {total}", "White"),
            say("", None),
            "",
        ]

        for index, entry in enumerate(entries, start=1):
            name = entry.filename
            lines.append(f"# File {index}/{total}: {_comment_safe(name)}")
            if not isinstance(entry, BatchEntry):
                lines += [
                    f"# Skipped: {_comment_safe(entry.reason)}",
                    say(f"Skipped: {name}", "Yellow"),
                    "",
                ]
                continue
            success, failure = say(f"{name} - Done", "Green"), say(f"{name} - Error", "Red")
            lines += [
                say(f"Processing: {name}", "Yellow"),
                entry.engine.generate_command(shell),
                status_check[0],
                f"    {success}",
                status_check[1],
                f"    {failure}",
                status_check[2],
                say("", None),
                "",
            ]

        lines.append(say("Batch encode finished!", "Green"))
        return "\n".join(lines) + "\n"

    def generate_bash_script(self) -> str:
        def say(text: str, _color: Optional[str]) -> str:
            return f"echo {quote(text, 'bash')}"

        return self._script(
            "bash", say, ["if [ $? -eq 0 ]; then", "else", "fi"], ["#!/bin/bash"],
        )

    def generate_powershell_script(self) -> str:
        def say(text: str, color: Optional[str]) -> str:
            line = f"Write-Host {quote(text, 'powershell')}"
            return f"{line} -ForegroundColor {color}" if color else line

        return self._script(
            "powershell", say, ["if ($LASTEXITCODE -eq 0) {", "} else {", "}"], [],
        )

    # ── Reports ────────────────────────────────────────────────────────

    def _report_rows(self) -> List[List[str]]:
        rows = []
        for entry in self.batch.entries:
            if isinstance(entry, BatchEntry):
                est = entry.estimate
                rows.append([
                    entry.filename,
                    _mb(est.original),
                    entry.metadata.video.codec_name,
                    entry.metadata.video.resolution,
                    _mb(est.optimized),
                    _mb(est.saved),
                    str(est.percentage),
                ])
            else:
                rows.append([entry.filename, "-", "FAILED", "-", "-", "-", "-"])
        return rows

    def _totals_row(self) -> List[str]:
        stats = self.batch.aggregate_stats()
        percentage = "" if stats.percentage is None else str(stats.percentage)
        return [
            "TOTAL", _mb(stats.total_original), "-", "-",
            _mb(stats.total_optimized), _mb(stats.total_saved), percentage,
        ]

    def generate_csv(self) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        writer.writerows(self._report_rows())
        buf.write("\n")
        writer.writerow(self._totals_row())
        return buf.getvalue()

    def generate_pdf(self) -> bytes:
        stats = self.batch.aggregate_stats()
        saved = format_file_size(stats.total_saved)
        if stats.percentage is not None:
            saved += f" ({stats.percentage}%)"

        doc = BatchReportDocument(f"{APP_NAME} Batch Report")
        doc.add_page()
        doc.title_block(f"Generated on {self.generated_on.strftime('%B %d, %Y')}")

        doc.heading("Summary")
        doc.summary([
            (self._profile_label, self.batch.profile_id),
            ("Files analyzed", str(stats.count)),
            ("Files failed", str(stats.failed_count)),
            ("Original size", format_file_size(stats.total_original)),
            ("Optimized size", format_file_size(stats.total_optimized)),
            ("Estimated savings", saved),
        ])

        doc.heading("Files")
        doc.table(
            [85.0, 30.0, 40.0, 25.0, 32.0, 30.0, 20.0],
            CSV_HEADER, self._report_rows(), self._totals_row(),
        )

        buf = io.BytesIO()
        doc.output(buf)
        return buf.getvalue()

    def export(self, fmt: str):
        """Return (content, filename, media type) for an export format."""
        if fmt not in EXPORT_FILENAMES:
            raise ValueError(f"Unsupported export format: {fmt}")
        filename, media_type = EXPORT_FILENAMES[fmt]
        builders = {
            "bash": self.generate_bash_script,
            "powershell": self.generate_powershell_script,
            "csv": self.generate_csv,
            "pdf": self.generate_pdf,
        }
        content = builders[fmt]()
        logger.info(f"Generated {fmt} export for {len(self.batch.entries)} file(s)")
        return content, filename, media_type
