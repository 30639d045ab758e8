"""
Reporting Module
"""
from .reports import Report, ReportFormat, ReportWriter, render_report

__all__ = ["Report", "ReportFormat", "ReportWriter", "render_report"]
