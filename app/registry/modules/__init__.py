"""
Feature modules live under this package.

Keep module boundaries clean: each module owns its models/service/routes,
while reusing platform primitives (principal loading, permission resolver,
audit log, DB session).
"""
