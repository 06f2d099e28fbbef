"""
Terminal presentation of scan results.
"""

from .rich_ui import RichScanView, build_results_table

__all__ = ["RichScanView", "build_results_table"]
