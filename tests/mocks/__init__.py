"""
Centralized mock objects for testing.

This package provides reusable fakes for transports, clocks and registry
checks, reducing code duplication across test files.
"""
