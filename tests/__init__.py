"""Tests for OPNsense Switches."""
