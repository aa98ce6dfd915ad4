"""HTTP surface of the asset producer."""
