"""Infrastructure: settings, logging, database access, security and errors."""
