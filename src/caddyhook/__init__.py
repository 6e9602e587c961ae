"""caddyhook: GitHub push webhook that re-pins the Caddyfile and reloads Caddy.

Receives push deliveries, rewrites the commit pin in the Caddyfile manifest
paths, and runs ``caddy reload`` inside the Caddy container through the
Docker Engine API on the local socket.
"""

__version__ = "0.1.0"
