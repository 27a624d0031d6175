"""Validação pós-run da timeline da tabela alvo."""

from .timeline import TimelineReport, TimelineValidator, ValidationExpectation

__all__ = ["TimelineReport", "TimelineValidator", "ValidationExpectation"]
