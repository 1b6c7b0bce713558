"""Export-Modul: Excel (openpyxl) und Terminal-Raster (rich) für den Wochenplan."""

from export.excel_export import ExcelExporter

__all__ = ["ExcelExporter"]
