"""Interactive console — line parser and read-execute-print loop."""
