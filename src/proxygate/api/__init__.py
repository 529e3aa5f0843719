"""
proxygate.api

HTTP command API package (FastAPI).

Responsibilities:
- App factory, dependency wiring and routers for the chat adapter.
"""

# Package marker.
