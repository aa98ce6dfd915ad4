"""Cross-cutting infrastructure: logging, HTTP client construction and stats."""
