"""Core services: identity facade, audit trail, database and validators.

Flask is not imported here so the CLI can use these modules on its own.
"""
