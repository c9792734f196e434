"""Validation components and the ingestion orchestrator.

Components are plain classes configured through their constructors and
composed in ``ingestion_gate.api.dependencies``.
"""
