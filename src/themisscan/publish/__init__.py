from .report import default_report_name, render_markdown_report, render_report, write_report

__all__ = ["default_report_name", "render_markdown_report", "render_report", "write_report"]
