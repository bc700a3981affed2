"""
Model checker integration module.

This module provides the implementation of the CheckerBackend protocol
by driving the ESBMC executable as a subprocess: command-line construction,
process lifecycle (timeouts, cancellation, kill), and output classification.
"""
