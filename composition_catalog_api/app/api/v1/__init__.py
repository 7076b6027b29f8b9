"""Version 1 of the Composition Catalog API."""
