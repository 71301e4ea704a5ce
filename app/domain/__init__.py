"""
Pure domain layer: value objects, immutable records, transitions and pricing.

Nothing in this package touches the database or raises for expected
failures; see app.domain.result.
"""
