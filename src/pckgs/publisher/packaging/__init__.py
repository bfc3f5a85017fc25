"""
The `packaging` sub-package contains modules related to the construction and
publication of registry packages.

This includes:
- Building the reproducible tarball with its single top-level package folder.
- Loading the package manifest and collecting companion documents.
- Orchestrating the start/transfer/complete publish handshake.
"""
