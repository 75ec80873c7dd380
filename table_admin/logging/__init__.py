"""Application logging: labeled stdout logger and JSON Lines error log."""
