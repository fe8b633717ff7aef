"""
Document registry.

- Documents are referenced by content hash; payloads live elsewhere
- Every successful update bumps the version by exactly one
- Delete is a flag; document ids are never reused
"""
