"""Signed-token protocol and client-credentials authentication."""
