"""Domain services built on the shared infrastructure."""
