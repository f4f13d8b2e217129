"""Ingestion helpers.

Lenient coercion of server and persisted payloads into typed values.
"""
