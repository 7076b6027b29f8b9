"""
Service layer.

Each service encapsulates the business logic of one domain and talks
to SQLite through ``core.db``.  Endpoints stay thin: they resolve the
caller, call a service and translate ``ServiceError`` into HTTP
responses.
"""
