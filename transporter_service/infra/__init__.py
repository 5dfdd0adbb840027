"""Infrastructure: logging, database engine, work queue, external tools."""
