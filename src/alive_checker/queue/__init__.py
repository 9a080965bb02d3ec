"""Durable retry queue for tax identifiers awaiting verification."""
