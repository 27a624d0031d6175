"""Orquestração ponta a ponta: `SuiteJob` e `SuiteOutcome`."""

from .job import SuiteJob
from .outcome import OutcomeStatus, SuiteOutcome

__all__ = ["OutcomeStatus", "SuiteJob", "SuiteOutcome"]
