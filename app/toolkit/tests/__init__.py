"""Tests for the toolkit app (PII helpers and validators)."""
