"""Feature modules exposed over HTTP."""
