"""Unit tests for the OPNsense Switches engine."""
