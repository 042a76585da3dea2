"""Regression tests for branch decisions.

Pins the documented scoring, tie-break and fallback behaviour and
end-to-end routing of a sample support workflow.
"""
