"""Built-in ad templates and their loader."""
