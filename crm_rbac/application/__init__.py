"""
Application layer - Use Cases and Business Logic.

Services orchestrate the domain rules over the repositories: the permission
catalog, the authorization engine, the role store, the permission matrix,
the audit log and platform initialization.
"""
