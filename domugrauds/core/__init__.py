"""Credential, session, and push primitives."""
