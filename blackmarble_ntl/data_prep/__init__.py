"""Data preparation for Black Marble nighttime lights."""
