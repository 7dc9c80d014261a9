"""
Feature modules live under this package.

Keep module boundaries clean: each module owns its routes and services, while
reusing platform primitives (config, audit, storage, DB session).
"""
