"""Recurrence rules, occurrence generation and slot materialization."""
