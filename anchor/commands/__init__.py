"""Command implementations registered on the anchor CLI group."""
