"""Test suite for the typedforms form-state engine.

This package contains tests for:
- Validator composition and built-in validator factories
- Field registry and validation execution
- Debounce scheduling (manual clock and asyncio)
- State calculation for every event type and strategy
- FormController scenarios (submission, cross-field, reset, restore)
"""
