"""
Service layer.

Each service encapsulates the business rules of one domain and raises
the errors defined in ``core.errors``.  Endpoints stay thin: they
collect request data, resolve collaborators from ``app.state`` and
delegate here.
"""
