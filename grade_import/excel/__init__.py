"""Workbook reading and template generation (openpyxl)."""
