"""Content types understood by ``POST`` on the receiving server."""

OCTET_STREAM = "application/octet-stream"
DIRECTORY = "directory"
