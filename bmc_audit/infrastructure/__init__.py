"""
Infrastructure layer module.

This module contains concrete implementations of the domain protocols,
integrating with the external ESBMC model checker.

Key components:
- checker/: ESBMC executor, command-line builder and output parser
"""
