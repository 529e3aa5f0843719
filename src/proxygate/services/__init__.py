"""
proxygate.services

Service layer package.

Responsibilities:
- Compose the access engine (`context`) and expose command semantics
  (`access_service`) to the API layer.
"""

# Package marker.
