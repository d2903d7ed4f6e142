"""Tests for focusstore."""
