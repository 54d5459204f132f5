"""
Facility feature toggle test suite.
"""
