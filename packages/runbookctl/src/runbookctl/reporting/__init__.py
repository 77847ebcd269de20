"""Report rendering: log lines, workflow annotations, step summary and JSON report."""
from .payload import build_report_payload, write_report
from .sink import ReportSink, format_annotation

__all__ = ["ReportSink", "build_report_payload", "format_annotation", "write_report"]
