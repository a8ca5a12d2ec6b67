"""Infrastructure technique (DuckDB)."""
