"""
The `registry` sub-package talks to the pckgs registry: it encodes the
multipart forms of the publish handshake and performs the three HTTP calls.
"""
