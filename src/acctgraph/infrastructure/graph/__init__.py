"""NetworkX view of the relationship edge set."""
