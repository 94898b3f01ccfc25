"""Wire protocol spoken with the verdict service."""
