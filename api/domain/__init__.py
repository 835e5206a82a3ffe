"""Domain types and pure rules (profile views, vCard rendering, delivery table)."""
