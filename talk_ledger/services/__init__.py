"""External services: local persistence and spreadsheet export."""
