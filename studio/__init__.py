"""
Tattoo studio scheduling and billing core.

- errors: typed error taxonomy and store error translation
- schemas: request validation (pydantic)
- services: conflict detection, appointment state, financial aggregation
- transactions: atomic appointment writes
"""
