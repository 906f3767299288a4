"""Immunization schedule evaluation engine.

This package contains the dose validation, series classification, forecasting
and visit grouping logic, isolated from storage and presentation so it can be
tested and reasoned about as a pure computation.
"""
