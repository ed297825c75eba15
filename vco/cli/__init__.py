"""Command-line interface for the VCO client."""
