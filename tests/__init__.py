"""
Tests Package.

This package contains test suites for validating FlowLens, covering the
workflow graph model, connection validation, issue detection, metric
estimation, optimization and the command-line front end.
"""

# Tests Package
