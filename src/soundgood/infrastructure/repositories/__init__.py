"""Repositories — SQL for the rental workflow, grouped by concern."""
