"""
Shared utilities module.

Common utilities used across all layers: the Result type for functional
error handling, settings, and logging configuration.
"""

from bmc_audit.shared.result import Err, Ok, Result

__all__ = ["Ok", "Err", "Result"]
