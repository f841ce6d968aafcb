"""HTTP surface of the dispenser."""
