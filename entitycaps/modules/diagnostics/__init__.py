"""
Diagnostics Module - Black Box Interface

Purpose: Report discovery outcomes that never reach subscribers
Interface: record(), subscribe(), recent(), counts()
Hidden: Event history bounds, logging

Can be replaced with any metrics or tracing backend.
"""

from .diagnostics import DiagnosticEvent, DiagnosticKind, DiagnosticsRecorder

__all__ = ["DiagnosticEvent", "DiagnosticKind", "DiagnosticsRecorder"]
