"""
proxygate.auth

Authentication/authorization package.

Responsibilities:
- Allow-list and static-token access policy (`service`).
- Single-use token minting and consumption (`tokens`).
"""

# Package marker.
