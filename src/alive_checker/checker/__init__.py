"""Verification run orchestration."""
