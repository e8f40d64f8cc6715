"""Cross-cutting pieces: error envelope and logging setup."""
