"""
Adapters for the services the API depends on but does not own: the
media asset store, outgoing mail and the realtime transport.

Concrete instances are created in ``main.create_app`` and stored on
``app.state`` so tests can substitute their own implementations.
"""
