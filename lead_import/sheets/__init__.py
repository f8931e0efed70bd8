"""Spreadsheet ingestion: reading, column sniffing, phone normalization, row parsing."""
