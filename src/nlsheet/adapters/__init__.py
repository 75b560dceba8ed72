"""Workbook codecs."""
