"""Employee feed ingestion: spreadsheet validation, row reconciliation and welcome notifications."""
