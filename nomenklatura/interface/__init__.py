"""Command-line tooling for Nomenklatura."""
